"""Answer collection for both bootstrap stages.

Prompting is a collaborator of the coordinator, not part of it: these
functions only return plain answer dictionaries, which
:func:`backend_studio.config.validate_config` turns into a ``ConfigModel``.
Stage 2 usually runs inside npm's ``postinstall`` hook where stdin may not be
a terminal, so every question has a default and answers can also come from a
JSON file.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from rich.prompt import Confirm, IntPrompt, Prompt

from ..config import (
    DEFAULT_DB_PORTS,
    DEFAULT_MONGO_URI,
    DEFAULT_PORTS,
    DEFAULT_SQLITE_NAME,
    MONGO_URI_PATTERN,
    DatabaseChoice,
    FeatureFlag,
    Framework,
    StudioSettings,
    validate_bootstrap,
)
from ..errors import ValidationError
from ..utils import console, load_json, print_error

DEFAULT_PROJECT_NAME = "backend"


def is_interactive(settings: StudioSettings) -> bool:
    """Whether questions may be asked on the terminal."""
    return not settings.no_input and sys.stdin.isatty()


# ---------------------------------------------------------------------------
# Stage 1
# ---------------------------------------------------------------------------


def collect_bootstrap_answers(
    project_name: str | None,
    framework: str | None,
    *,
    base_dir: Path,
    interactive: bool,
) -> dict[str, Any]:
    """Return ``{"project_name", "framework"}`` for stage 1.

    A name given on the command line is used as-is when valid; otherwise the
    user is asked until the name is usable. Without a terminal the defaults
    apply and an invalid name is an error.
    """
    framework_value = framework or Framework.EXPRESS.value
    if not interactive:
        return {
            "project_name": project_name or DEFAULT_PROJECT_NAME,
            "framework": framework_value,
        }

    name = project_name
    while True:
        if not name:
            name = Prompt.ask("Project folder name", default=DEFAULT_PROJECT_NAME)
        try:
            validate_bootstrap(
                {"project_name": name, "framework": framework_value}, base_dir=base_dir
            )
        except ValidationError as exc:
            print_error(str(exc))
            name = None
            continue
        break

    if framework is None:
        framework_value = Prompt.ask(
            "Which backend framework would you like to use?",
            choices=[f.value for f in Framework],
            default=Framework.EXPRESS.value,
        )
    return {"project_name": name, "framework": framework_value}


# ---------------------------------------------------------------------------
# Stage 2
# ---------------------------------------------------------------------------


def default_answers(framework: Framework) -> dict[str, Any]:
    """Answers used when no terminal and no answers file are available."""
    answers: dict[str, Any] = {
        "port": DEFAULT_PORTS[framework],
        "database": DatabaseChoice.NONE.value,
        "features": [FeatureFlag.CORS.value, FeatureFlag.AUTO_RELOAD.value],
    }
    if framework is Framework.EXPRESS:
        answers["language_mode"] = "typed"
    else:
        answers["features"].append(FeatureFlag.VENV.value)
    return answers


def load_answers(path: str | Path) -> dict[str, Any]:
    """Read stage-2 answers from a JSON object file.

    Raises:
        ValidationError: If the file is missing or not a JSON object.
    """
    try:
        data = load_json(path)
    except FileNotFoundError:
        raise ValidationError("answers_file", f"{path} does not exist") from None
    except json.JSONDecodeError as exc:
        raise ValidationError("answers_file", f"{path} is not valid JSON: {exc.msg}") from exc
    if "_root" in data:
        raise ValidationError("answers_file", f"{path} must contain a JSON object")
    return data


def collect_stage2_answers(framework: Framework, settings: StudioSettings) -> dict[str, Any]:
    """Gather the remainder of the configuration for stage 2.

    Precedence: answers file, then the terminal, then :func:`default_answers`.
    Values from the file are layered over the defaults, so it only needs the
    keys that differ.
    """
    if settings.answers_file is not None:
        return {**default_answers(framework), **load_answers(settings.answers_file)}
    if not is_interactive(settings):
        console.print("[dim]No terminal attached; using default answers.[/dim]")
        return default_answers(framework)
    return ask_stage2_questions(framework)


def ask_stage2_questions(framework: Framework) -> dict[str, Any]:
    answers: dict[str, Any] = {}
    features: list[str] = []

    if framework is Framework.EXPRESS:
        typed = Confirm.ask("Use TypeScript?", default=True)
        answers["language_mode"] = "typed" if typed else "untyped"
    else:
        if Confirm.ask("Create a Python virtual environment?", default=True):
            features.append(FeatureFlag.VENV.value)

    answers["port"] = _ask_port(f"{framework.display_name} server port", DEFAULT_PORTS[framework])

    if Confirm.ask("Enable CORS (Cross-Origin Resource Sharing)?", default=True):
        features.append(FeatureFlag.CORS.value)
    reload_question = (
        "Use nodemon for development (auto-restarts the server)?"
        if framework is Framework.EXPRESS
        else "Add a dev script with Flask's auto-reloader?"
    )
    if Confirm.ask(reload_question, default=True):
        features.append(FeatureFlag.AUTO_RELOAD.value)
    answers["features"] = features

    database = DatabaseChoice(
        Prompt.ask(
            "Choose a database",
            choices=[d.value for d in DatabaseChoice],
            default=DatabaseChoice.NONE.value,
        )
    )
    answers["database"] = database.value

    if database is DatabaseChoice.MONGODB:
        answers["connection_uri"] = _ask_mongo_uri()
    elif database.is_networked_sql:
        answers["credentials"] = {
            "user": Prompt.ask("Database user", default="user"),
            "password": Prompt.ask("Database password", default="password", password=True),
            "host": Prompt.ask("Database host", default="localhost"),
            "port": _ask_port("Database port", DEFAULT_DB_PORTS[database]),
            "database_name": Prompt.ask("Database name", default=DEFAULT_SQLITE_NAME),
        }
    elif database is DatabaseChoice.SQLITE:
        answers["database_name"] = Prompt.ask(
            "SQLite database file name", default=DEFAULT_SQLITE_NAME
        )
    return answers


def _ask_port(question: str, default: int) -> int:
    while True:
        port = IntPrompt.ask(question, default=default)
        if 1 <= port <= 65535:
            return port
        print_error("Port must be between 1 and 65535.")


def _ask_mongo_uri() -> str:
    while True:
        uri = Prompt.ask("MongoDB connection URI", default=DEFAULT_MONGO_URI).strip()
        if MONGO_URI_PATTERN.match(uri):
            return uri
        print_error("Expected a mongodb:// or mongodb+srv:// connection string.")
