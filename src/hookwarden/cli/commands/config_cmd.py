"""validate-config command.

Exit codes:
  0: valid
  1: schema errors
  2: cannot read or parse the file
"""

from __future__ import annotations

from pathlib import Path

import typer
import yaml
from pydantic import ValidationError

from hookwarden.core.config import HookConfig

from ..helpers import configure_global_logging
from ..output import console, print_json


def validate_config(
    config_file: Path = typer.Argument(
        ...,
        help="Path to a .hookwarden.yaml file",
        exists=True,
        readable=True,
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output result as JSON"),
) -> None:
    """Validate a hook configuration file."""
    configure_global_logging(console)

    try:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        if json_output:
            print_json({"valid": False, "error": f"Cannot parse file: {e}"})
        else:
            console.print(f"[red]Cannot parse config file:[/red] {e}")
        raise typer.Exit(2) from None

    try:
        config = HookConfig.model_validate(data or {})
    except ValidationError as e:
        errors = [
            {"location": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        if json_output:
            print_json({"valid": False, "errors": errors})
        else:
            console.print(f"[red]Invalid configuration:[/red] {config_file}")
            for err in errors:
                console.print(f"  [red]x[/red] {err['location'] or '<root>'}: {err['message']}")
        raise typer.Exit(1) from None

    if json_output:
        print_json({"valid": True, "config": config.model_dump(mode="json")})
        return

    console.print(f"[green]Valid configuration:[/green] {config_file}")
    enabled = [
        name for name, on in (
            ("linting", config.enable_linting),
            ("testing", config.enable_testing),
            ("context validation", config.enable_context_validation),
            ("gatekeeper", config.enable_gatekeeper),
        ) if on
    ]
    console.print(f"  Enabled: {', '.join(enabled) or 'none'}")
    console.print(f"  Development mode: {config.development_mode}")
    console.print(f"  Performance threshold: {config.performance_threshold}ms")
    console.print(f"  Protected branches: {', '.join(config.protected_branches)}")
    console.print(f"  State backend: {config.state_backend}")
