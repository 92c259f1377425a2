#!/usr/bin/env python3
"""gitboard CLI - list local and remote projects and compare branches."""
from __future__ import annotations

import argparse
import sys

# Fail fast on unsupported interpreter version
if sys.version_info < (3, 10):
    print(f"gitboard requires Python 3.10+; found {sys.version.split()[0]}", file=sys.stderr)
    sys.exit(1)


def _without_none(values):
    """Drop None values recursively; TOML has no null."""
    if isinstance(values, dict):
        return {k: _without_none(v) for k, v in values.items() if v is not None}
    return values


def _build_service(args):
    from pathlib import Path
    from gitboard_mcp.observability import configure_logging
    from .config_loader import load_config
    from .service import ProjectService

    project_path = Path(args.project_path) if args.project_path else None
    config = load_config(project_path)
    configure_logging(config.logging)
    return ProjectService(config=config)


def _refresh(service, args):
    from pathlib import Path
    from .credentials import get_github_token

    roots = [Path(r) for r in args.root] if args.root else service.config.scan.root_paths()
    if not roots:
        print("❌ No scan roots configured. Pass --root or set scan.roots.", file=sys.stderr)
        sys.exit(1)
    return service.refresh(get_github_token(), roots)


def _find_local(service, ids, target):
    """Project id whose local name or path matches ``target``."""
    from pathlib import Path

    target_path = Path(target).expanduser()
    for project_id in ids:
        project = service.get_project(project_id)
        if project.local is None:
            continue
        if project.local.name == target:
            return project_id
        if target_path.is_absolute() and project.local.path == target_path:
            return project_id
    return None


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser(
        prog="gitboard",
        description="Merged view of local git checkouts and GitHub repositories",
    )

    sub = ap.add_subparsers(dest="cmd")

    p_projects = sub.add_parser("projects", help="Scan roots, list GitHub repositories and print the merged set")
    p_projects.add_argument("--root", action="append", help="Directory to scan (repeatable; default: scan.roots)")
    p_projects.add_argument("--project-path", help="Project directory for config discovery")
    p_projects.add_argument("--json", dest="as_json", action="store_true", help="Output as JSON")

    p_relation = sub.add_parser("relation", help="Compare a local branch head with the same branch on GitHub")
    p_relation.add_argument("target", help="Local project name or absolute path")
    p_relation.add_argument("branch", help="Branch name")
    p_relation.add_argument("--commit", help="Local commit sha (default: head of the local branch)")
    p_relation.add_argument("--root", action="append", help="Directory to scan (repeatable; default: scan.roots)")
    p_relation.add_argument("--project-path", help="Project directory for config discovery")

    # Config commands
    p_config = sub.add_parser("config", help="Configuration management")
    config_sub = p_config.add_subparsers(dest="config_cmd")

    p_config_show = config_sub.add_parser("show", help="Show resolved configuration")
    p_config_show.add_argument("--project-path", help="Project directory for config discovery")
    p_config_show.add_argument("--json", dest="as_json", action="store_true", help="Output as JSON")
    p_config_show.add_argument("--sources", action="store_true", help="Show config source files")

    p_config_validate = config_sub.add_parser("validate", help="Validate configuration files")
    p_config_validate.add_argument("--project-path", help="Project directory for config discovery")
    p_config_validate.add_argument("--strict", action="store_true", help="Treat warnings as errors")

    args = ap.parse_args(argv)

    if not args.cmd:
        ap.print_help()
        sys.exit(0)

    if args.cmd == "projects":
        import json as json_module
        from .errors import GitboardError

        try:
            service = _build_service(args)
            ids = _refresh(service, args)
        except GitboardError as e:
            print(f"❌ {e}", file=sys.stderr)
            sys.exit(1)

        if args.as_json:
            print(json_module.dumps([service.describe_project(i) for i in ids], indent=2))
            sys.exit(0)

        if not ids:
            print("No projects found.")
            sys.exit(0)

        print(f"{len(ids)} projects:")
        for project_id in ids:
            info = service.describe_project(project_id)
            where = info["path"] or info["url"] or ""
            changes = f"{info['changes']} changes" if info["path"] else "remote only"
            print(f"  {project_id}  {info['display_name']:<30} {changes:<14} {where}")
        sys.exit(0)

    if args.cmd == "relation":
        from .credentials import get_github_token
        from .errors import GitboardError

        try:
            service = _build_service(args)
            ids = _refresh(service, args)
            project_id = _find_local(service, ids, args.target)
            if project_id is None:
                print(f"❌ No local project named {args.target}", file=sys.stderr)
                sys.exit(1)

            commit = args.commit
            if not commit:
                commits = service.get_local_branch_commits(project_id) or {}
                commit = commits.get(args.branch)
                if not commit:
                    print(f"❌ No local branch {args.branch} in {args.target}", file=sys.stderr)
                    sys.exit(1)

            relation = service.get_branch_relation(get_github_token(), project_id, args.branch, commit)
        except GitboardError as e:
            print(f"❌ {e}", file=sys.stderr)
            sys.exit(1)

        print(relation.value)
        sys.exit(0)

    if args.cmd == "config":
        from pathlib import Path
        import json as json_module

        if not args.config_cmd:
            print("Usage: gitboard config {show|validate}")
            sys.exit(0)

        if args.config_cmd == "show":
            from .config_loader import load_config, get_config_paths
            from .errors import ConfigurationError

            project_path = Path(args.project_path) if args.project_path else None

            if args.sources:
                paths = get_config_paths(project_path)
                print("Config sources (in priority order):")
                print()
                for name, path in paths.items():
                    if path and path.exists():
                        print(f"  ✓ {name}: {path}")
                    elif path:
                        print(f"  ✗ {name}: {path} (not found)")
                    else:
                        print(f"  - {name}: (not applicable)")
                print()
                print("Environment variables override all file configs.")
                sys.exit(0)

            try:
                config = load_config(project_path)
            except ConfigurationError as e:
                print(f"❌ Config error: {e}", file=sys.stderr)
                sys.exit(1)

            if args.as_json:
                print(json_module.dumps(config.model_dump(mode="json", by_alias=True), indent=2))
            else:
                import tomlkit

                doc = tomlkit.document()
                doc.add(tomlkit.comment(" gitboard configuration (resolved)"))
                doc.add(tomlkit.nl())

                config_dict = _without_none(config.model_dump(by_alias=True))
                for section, values in config_dict.items():
                    if isinstance(values, dict):
                        table = tomlkit.table()
                        for key, val in values.items():
                            if isinstance(val, dict):
                                # Nested table (e.g., github.listing)
                                subtable = tomlkit.table()
                                for subkey, subval in val.items():
                                    subtable.add(subkey, subval)
                                table.add(key, subtable)
                            else:
                                table.add(key, val)
                        doc.add(section, table)
                    else:
                        doc.add(section, values)

                print(tomlkit.dumps(doc))

            sys.exit(0)

        if args.config_cmd == "validate":
            from .config_loader import load_config, get_config_paths
            from .errors import ConfigurationError
            from .credentials import get_github_token

            project_path = Path(args.project_path) if args.project_path else None
            paths = get_config_paths(project_path)

            errors = []
            warnings = []

            found_any = False
            for name, path in paths.items():
                if path and path.exists():
                    found_any = True
                    print(f"  ✓ Found: {path}")

            if not found_any:
                warnings.append("No config files found. Using defaults.")

            try:
                config = load_config(project_path)
                print()
                print("✓ Configuration is valid.")

                if not config.scan.roots:
                    warnings.append("scan.roots is empty: no local projects will be found.")
                for root in config.scan.root_paths():
                    if not root.is_dir():
                        warnings.append(f"Scan root does not exist: {root}")
                if not get_github_token():
                    warnings.append("No GitHub token found (GITHUB_TOKEN, GH_TOKEN or credentials.toml).")

            except ConfigurationError as e:
                errors.append(str(e))

            if warnings:
                print()
                print("Warnings:")
                for w in warnings:
                    print(f"  ⚠ {w}")

            if errors:
                print()
                print("Errors:", file=sys.stderr)
                for e in errors:
                    print(f"  ❌ {e}", file=sys.stderr)
                sys.exit(1)

            if args.strict and warnings:
                print()
                print("--strict: Treating warnings as errors.", file=sys.stderr)
                sys.exit(1)

            sys.exit(0)

    print(f"gitboard {args.cmd}: unknown command", file=sys.stderr)
    sys.exit(2)


if __name__ == "__main__":
    main()
