"""Command-line entry points.

``backend-studio [project-name]`` runs stage 1. Stage 2 is not started from
here directly: the launcher that stage 1 copies into ``.scripts/`` calls
:func:`stage2_main` when npm fires the ``postinstall`` hook.

Usage::

    backend-studio my-api
    backend-studio my-api --framework flask --yes
    python -m backend_studio --version
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from rich.panel import Panel

from . import __version__
from .bootstrap.coordinator import BootstrapCoordinator
from .bootstrap.prompts import collect_bootstrap_answers, collect_stage2_answers, is_interactive
from .config import ConfigModel, FeatureFlag, Framework, StudioSettings, validate_bootstrap
from .errors import DependencyInstallError, StudioError
from .utils import console, print_banner, print_error, print_success, print_summary_table, print_warning

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="backend-studio",
        description="Scaffold an Express.js or Flask REST API in two stages.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  backend-studio my-api\n"
            "  backend-studio my-api --framework flask\n"
            "  backend-studio my-api --framework express --yes\n"
        ),
    )
    parser.add_argument(
        "project_name",
        nargs="?",
        default=None,
        help="Folder to create (prompted for when omitted or invalid)",
    )
    parser.add_argument(
        "--framework", "-f",
        choices=[f.value for f in Framework],
        default=None,
        help="Backend framework (prompted for when omitted)",
    )
    parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Never prompt; use defaults for anything not given",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Stage 1: create the project folder with its bootstrap skeleton."""
    args = build_parser().parse_args(argv)
    settings = StudioSettings.from_env()
    if args.yes:
        settings = settings.model_copy(update={"no_input": True})

    print_banner("Welcome to backend-studio")
    base_dir = Path.cwd()
    coordinator = BootstrapCoordinator(settings)

    try:
        answers = collect_bootstrap_answers(
            args.project_name,
            args.framework,
            base_dir=base_dir,
            interactive=is_interactive(settings),
        )
        config = validate_bootstrap(answers, base_dir=base_dir)
        target = asyncio.run(coordinator.run_stage1(config, base_dir))
    except StudioError as exc:
        print_error(f"Error: {exc}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        coordinator.rollback_stage1()
        print_warning("\nSetup cancelled.")
        return EXIT_INTERRUPTED

    print_success(f"Folder '{target.name}' created for a {config.framework.display_name} project.")
    console.print(
        Panel(
            f"cd {target.name}\n"
            "npm install --foreground-scripts",
            title="Next steps",
            expand=False,
        )
    )
    console.print(
        "[dim]npm install runs the setup inside the new folder. "
        "--foreground-scripts lets it ask its questions; without it the "
        "defaults are used.[/dim]"
    )
    return EXIT_OK


def stage2_main(framework: Framework, directory: str | Path) -> int:
    """Stage 2: generate the real project in *directory* (called by the launcher)."""
    directory = Path(directory).resolve()
    settings = StudioSettings.from_env()
    coordinator = BootstrapCoordinator(settings)

    print_banner(f"Setting up {directory.name} ({framework.display_name})")
    try:
        answers = collect_stage2_answers(framework, settings)
        config = asyncio.run(coordinator.run_stage2(directory, framework, answers))
    except DependencyInstallError as exc:
        print_error(f"Error: {exc}")
        if exc.output:
            console.print(exc.output, markup=False, highlight=False)
        return EXIT_FAILURE
    except StudioError as exc:
        print_error(f"Error: {exc}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print_warning("\nSetup cancelled. Files written so far were left in place.")
        return EXIT_INTERRUPTED

    print_summary_table(summarise(config), title="Project created")
    print_success(f"{directory.name} is ready.")
    console.print(Panel(next_steps(config), title="Next steps", expand=False))
    return EXIT_OK


def summarise(config: ConfigModel) -> dict[str, str]:
    summary = {
        "Project": config.project_name,
        "Framework": config.framework.display_name,
    }
    if config.language_mode is not None:
        summary["Language"] = "TypeScript" if config.typed else "JavaScript"
    summary["Port"] = str(config.port)
    summary["Database"] = config.database.display_name
    summary["Features"] = ", ".join(sorted(f.value for f in config.features)) or "none"
    return summary


def next_steps(config: ConfigModel) -> str:
    if config.framework is Framework.EXPRESS:
        command = "npm run dev" if config.has(FeatureFlag.AUTO_RELOAD) else "npm start"
        return f"{command}\nnpm test"
    lines = []
    if config.has(FeatureFlag.VENV):
        lines.append("source venv/bin/activate   (Windows: venv\\Scripts\\activate)")
    lines.append("python run.py")
    lines.append("pip install -r requirements-dev.txt && pytest")
    return "\n".join(lines)
