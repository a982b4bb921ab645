"""CLI commands for fetching modules from GitHub."""

import argparse
import json
import logging
import sys
from pathlib import Path


def _print_errors(errors) -> None:
    for error in errors:
        sys.stderr.write(f"error: {error}\n")
    sys.stderr.flush()


def _module_dir(parser: argparse.ArgumentParser, args) -> Path:
    from .settings import get_settings

    module_dir = args.module_dir or get_settings().module_path
    if module_dir is None:
        parser.error("no module directory: pass --module-dir or set MODULE_PATH")
    return Path(module_dir)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Install modules from GitHub branches",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log requests and install steps to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # branches subcommand
    branches_parser = subparsers.add_parser(
        "branches",
        help="List the branches of a repository",
    )
    branches_parser.add_argument("owner", help="Repository owner")
    branches_parser.add_argument("repo", help="Repository name")

    # install subcommand
    install_parser = subparsers.add_parser(
        "install",
        help="Download a branch and install it as a module",
    )
    install_parser.add_argument("owner", help="Repository owner")
    install_parser.add_argument("repo", help="Repository name (also the module folder name)")
    install_parser.add_argument("branch", help="Branch to install")
    install_parser.add_argument(
        "--module-dir",
        type=Path,
        default=None,
        help="Module directory (default: MODULE_PATH)",
    )
    install_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Give up on download and extraction after this many seconds",
    )

    # status subcommand
    status_parser = subparsers.add_parser(
        "status",
        help="Check tracked modules on disk",
    )
    status_parser.add_argument(
        "records",
        type=Path,
        help="JSON file with a list of module records (name, location, branch, last_commit)",
    )
    status_parser.add_argument(
        "--module-dir",
        type=Path,
        default=None,
        help="Module directory (default: MODULE_PATH)",
    )
    status_parser.add_argument(
        "--check-remote",
        action="store_true",
        help="Also ask GitHub whether each branch has newer commits",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(name)s] %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    if args.command == "branches":
        from .client import get_repo_client

        client = get_repo_client()
        branches = client.list_branches(args.owner, args.repo)
        json.dump(
            [{"name": b.name, "commit_url": b.commit_url} for b in branches],
            sys.stdout,
            indent=2,
        )
        sys.stdout.write("\n")
        if client.errors:
            _print_errors(client.errors)
            sys.exit(1)
    elif args.command == "install":
        from .cancel import CancelToken
        from .client import get_repo_client

        module_dir = _module_dir(install_parser, args)
        client = get_repo_client()
        cancel = CancelToken(timeout=args.timeout) if args.timeout else None
        result = client.fetch_and_install(args.owner, args.repo, args.branch, module_dir, cancel=cancel)
        _print_errors(result.errors)
        if not result:
            sys.exit(1)
        json.dump(result.record.to_dict(), sys.stdout, indent=2)
        sys.stdout.write("\n")
        print(f"Installed {args.owner}/{args.repo}@{args.branch} to {result.path}", file=sys.stderr)
    elif args.command == "status":
        from .models import ModuleRecord
        from .registry import ModuleRegistry

        module_dir = _module_dir(status_parser, args)
        with open(args.records) as f:
            registry = ModuleRegistry([ModuleRecord.from_dict(d) for d in json.load(f)])

        client = None
        if args.check_remote:
            from .client import get_repo_client

            client = get_repo_client()

        states = []
        for record in registry.records:
            latest = None
            if client is not None and record.location and record.branch:
                latest = client.latest_commit(record.location, record.name, record.branch)
            state = registry.module_state(record, module_dir, latest_commit=latest)
            states.append({**record.to_dict(), "state": state.value})
        json.dump(states, sys.stdout, indent=2)
        sys.stdout.write("\n")
        if client is not None and client.errors:
            _print_errors(client.errors)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
