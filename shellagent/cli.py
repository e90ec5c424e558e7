"""Command line interface for the shell agent.

This module defines the ``shell-agent`` command using the ``click``
library.  Running it without a subcommand starts the interactive
loop.  Subcommands:

``shell-agent run <request>``
    Generate a command for a single request and print it.  With
    ``--execute`` the command is run after confirmation.

``shell-agent interactive``
    Read requests in a loop until ``exit`` or Ctrl+C.

``shell-agent download``
    Pull one of the catalog models into Ollama (``--list`` shows the
    catalog and what is already downloaded).

``shell-agent status``
    Show the configured model, whether it is ready, the models Ollama
    has and some system information.

``shell-agent feedback``
    Record whether a generated command worked.

``shell-agent configure``
    Change the default model or the Ollama address in
    ``~/.shell-agent.yaml``.

``shell-agent serve``
    Launch a FastAPI server exposing a JSON API for external
    integrations.  The server listens on port 5005 by default.
"""

from __future__ import annotations

import json
import platform
import subprocess
import sys
from typing import Optional

import click

from . import __version__
from .client import ShellAgent
from .config import Config, config_file, load_config, save_config, write_default_config
from .feedback import VALID_STATUSES, FeedbackEntry, FeedbackLog
from .inventory import ModelAlreadyPresent
from .log import init_logging
from .ollama import ProviderError, PullProgress
from .response import CommandResponse


EXIT_WORDS = ("exit", "quit", "q")
HELP_WORDS = ("help", "h")

HELP_TEXT = """Type a request in plain language, e.g. "find all python files modified today".
Special commands:
  help, h       show this help
  status        show model status
  exit, quit, q leave the shell agent"""


def _execute_command(command: str) -> tuple:
    """Execute a shell command and return (returncode, stdout, stderr)."""
    try:
        proc = subprocess.run(
            command,
            shell=True,
            capture_output=True,
            text=True,
        )
        return proc.returncode, proc.stdout, proc.stderr
    except OSError as exc:
        return 1, "", str(exc)


def _print_response(response: CommandResponse, config: Config) -> None:
    if not response.command:
        click.secho("The model could not turn this request into a command.", fg="yellow")
    else:
        click.echo()
        click.secho(f"  {response.command}", fg="green", bold=True)
        click.echo()
    if response.explanation and config.interactive.show_explanation:
        click.echo(f"Explanation: {response.explanation}")
    if response.warning:
        click.secho(response.warning, fg="yellow")
    if config.interactive.show_confidence:
        click.echo(f"Confidence: {response.confidence:.0%}")
    if response.alternatives:
        click.echo("Alternatives:")
        for alt in response.alternatives:
            click.echo(f"  {alt}")


def _needs_confirmation(agent: ShellAgent, response: CommandResponse, auto_yes: bool) -> bool:
    if agent.checker.is_dangerous(response.command):
        return True
    if auto_yes:
        return False
    return agent.config.interactive.confirm_commands or agent.config.safety.require_confirm


def _maybe_execute(agent: ShellAgent, response: CommandResponse, auto_yes: bool) -> Optional[int]:
    """Run the command after confirmation; return its exit code or None if skipped."""
    if not response.command:
        return None
    if _needs_confirmation(agent, response, auto_yes):
        if not click.confirm("Run this command?", default=False):
            click.echo("Command not executed.")
            return None
    returncode, stdout, stderr = _execute_command(response.command)
    if stdout:
        click.echo(stdout.rstrip())
    if stderr:
        click.echo(stderr.rstrip(), err=True)
    if returncode != 0:
        click.secho(f"Command exited with status {returncode}", fg="red")
    return returncode


def _print_progress(progress: PullProgress) -> None:
    if progress.total:
        click.echo(f"\r{progress.status}: {progress.fraction:6.1%}", nl=False)
    else:
        click.echo(f"\r{progress.status}", nl=False)


def _fail(message: str) -> None:
    click.secho(message, fg="red", err=True)
    sys.exit(1)


@click.group(invoke_without_command=True, context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--config", "config_path", type=str, default=None,
              help="Config file (default is $HOME/.shell-agent.yaml)")
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.version_option(__version__, prog_name="shell-agent")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], debug: bool, verbose: bool) -> None:
    """Shell agent – generate shell commands from natural language using local AI models."""
    config = load_config(config_path)
    init_logging(debug, verbose, config.logging.level, config.logging.file)
    ctx.obj = {"config": config, "config_path": config_path}
    if ctx.invoked_subcommand is None:
        ctx.invoke(interactive)


@cli.command(name="run")
@click.argument("request", nargs=-1, type=str)
@click.option("--execute", "-x", is_flag=True, help="Run the generated command after confirmation.")
@click.option("--yes", "-y", "auto_yes", is_flag=True,
              help="Skip confirmation for commands without dangerous patterns.")
@click.option("--json", "as_json", is_flag=True, help="Print the response as JSON.")
@click.pass_obj
def run_request(obj: dict, request: tuple, execute: bool, auto_yes: bool, as_json: bool) -> None:
    """Generate a command for a single request."""
    text = " ".join(request).strip()
    if not text:
        _fail('Please provide a request, e.g. shell-agent run "list all files in current directory"')
    config: Config = obj["config"]
    agent = ShellAgent.from_config(config)
    try:
        response = agent.generate_command(text)
    except ProviderError as exc:
        _fail(f"Error generating command: {exc}")
        return
    if as_json:
        click.echo(json.dumps(response.to_dict(), indent=2))
    else:
        _print_response(response, config)
    if execute:
        returncode = _maybe_execute(agent, response, auto_yes)
        if returncode:
            sys.exit(returncode)


def _status_inline(agent: ShellAgent) -> None:
    model = agent.registry.current()
    if model is None:
        click.secho("No model configured.", fg="yellow")
        return
    state = "ready" if model.downloaded else "not downloaded"
    click.echo(f"Model: {model.name} ({state})")


def _ask_feedback(log: FeedbackLog, prompt_text: str, command: str) -> None:
    choice = click.prompt(
        "Did this command work for you? [worked/failed/incorrect, Enter to skip]",
        default="",
        show_default=False,
    ).strip().lower()
    if not choice:
        return
    if choice not in VALID_STATUSES:
        click.secho("Unknown answer, feedback skipped.", fg="yellow")
        return
    correct = ""
    if choice == "incorrect":
        correct = click.prompt("Which command should have been generated?",
                               default="", show_default=False).strip()
    log.append(FeedbackEntry(status=choice, user_prompt=prompt_text,
                             generated_command=command, correct_command=correct))
    click.secho("Feedback submitted. Thank you!", fg="green")


@cli.command()
@click.pass_obj
def interactive(obj: dict) -> None:
    """Read requests in a loop and generate commands for them."""
    config: Config = obj["config"]
    agent = ShellAgent.from_config(config)
    feedback_log = FeedbackLog()
    click.secho("Shell Agent – describe what you want to do. Type 'help' for help.", bold=True)
    while True:
        try:
            text = click.prompt("shell-agent", prompt_suffix="> ", default="",
                                show_default=False).strip()
        except (click.Abort, EOFError, KeyboardInterrupt):
            click.echo()
            break
        if not text:
            continue
        lowered = text.lower()
        if lowered in EXIT_WORDS:
            break
        if lowered in HELP_WORDS:
            click.echo(HELP_TEXT)
            continue
        if lowered == "status":
            _status_inline(agent)
            continue

        click.echo("Thinking...")
        try:
            response = agent.generate_command(text)
        except ProviderError as exc:
            click.secho(f"Error generating command: {exc}", fg="red")
            continue
        except KeyboardInterrupt:
            click.echo()
            break
        _print_response(response, config)
        try:
            returncode = _maybe_execute(agent, response, auto_yes=False)
            if returncode is not None:
                _ask_feedback(feedback_log, text, response.command)
        except (click.Abort, KeyboardInterrupt):
            click.echo()
            continue
        except (OSError, ValueError) as exc:
            click.secho(f"Failed to save feedback: {exc}", fg="red")
    click.echo("Goodbye!")


@cli.command()
@click.option("--model", "-m", "model_name", type=str, default=None, help="Specific model to download")
@click.option("--list", "-l", "list_only", is_flag=True, help="List available models")
@click.pass_obj
def download(obj: dict, model_name: Optional[str], list_only: bool) -> None:
    """Download AI models into Ollama."""
    config: Config = obj["config"]
    agent = ShellAgent.from_config(config)
    models = agent.registry.list()
    if list_only:
        for model in models:
            flags = []
            if model.recommended:
                flags.append("recommended")
            if model.downloaded:
                flags.append("downloaded")
            suffix = f" [{', '.join(flags)}]" if flags else ""
            click.echo(f"{model.name:<14} {model.size:>6}  {model.description}{suffix}")
        return

    if model_name is None:
        recommended = agent.registry.recommended()
        default = recommended.name if recommended else None
        model_name = click.prompt("Model to download",
                                  type=click.Choice([m.name for m in models]), default=default)
    selected = agent.registry.find(model_name)
    if selected is None:
        _fail(f"Unknown model: {model_name}\nRun 'shell-agent download --list' to see available models")
        return
    if selected.downloaded:
        click.secho(f"Model {selected.name} is already downloaded", fg="yellow")
        return

    click.echo(f"Downloading: {selected.name} ({selected.size})")
    click.echo(f"Description: {selected.description}")
    try:
        marker = agent.inventory.download(selected, on_progress=_print_progress)
    except ModelAlreadyPresent as exc:
        click.secho(str(exc), fg="yellow")
        return
    except ProviderError as exc:
        click.echo()
        _fail(f"Failed to download model {selected.name}: {exc}")
        return
    click.echo()
    click.secho(f"Successfully downloaded model: {selected.name}", fg="green")
    click.echo(f"Recorded in: {marker.parent}")


@cli.command()
@click.option("--model", "model_only", is_flag=True, help="Show only model status")
@click.pass_obj
def status(obj: dict, model_only: bool) -> None:
    """Show shell agent status."""
    config: Config = obj["config"]
    agent = ShellAgent.from_config(config)
    current = agent.registry.current()
    click.secho("Model", bold=True)
    click.echo(f"  Configured: {config.ai.default_model}")
    if current is None:
        click.secho("  Current:    none", fg="yellow")
    else:
        state = click.style("ready", fg="green") if current.downloaded \
            else click.style("not downloaded", fg="yellow")
        click.echo(f"  Current:    {current.name} ({state})")
    try:
        remote = agent.inventory.remote_models()
    except ProviderError as exc:
        click.secho(f"  Ollama:     unavailable ({exc})", fg="red")
    else:
        click.echo(f"  Ollama:     {agent.ollama.base_url} ({len(remote)} models)")
        for model in remote:
            click.echo(f"    - {model.name} {model.parameter_size}".rstrip())
    if model_only:
        return
    click.secho("System", bold=True)
    click.echo(f"  OS:         {platform.system().lower()} {platform.machine()}")
    click.echo(f"  Python:     {platform.python_version()}")
    click.echo(f"  Config:     {config_file(obj.get('config_path'))}")
    click.echo(f"  Models dir: {config.model_path}")


@cli.command()
@click.option("--status", "-s", "feedback_status", required=True,
              type=click.Choice(VALID_STATUSES), help="Did the command work?")
@click.option("--prompt", "-p", "user_prompt", default="", help="The original user request")
@click.option("--command", "-c", "generated_command", default="", help="The generated shell command")
@click.option("--correct-command", "-r", default="", help="The correct command, if the generated one was incorrect")
@click.option("--reason", "-e", default="", help="A short explanation for the feedback")
def feedback(feedback_status: str, user_prompt: str, generated_command: str,
             correct_command: str, reason: str) -> None:
    """Submit feedback on a generated command."""
    entry = FeedbackEntry(
        status=feedback_status,
        user_prompt=user_prompt,
        generated_command=generated_command,
        correct_command=correct_command,
        reason=reason,
    )
    try:
        FeedbackLog().append(entry)
    except (OSError, ValueError) as exc:
        _fail(f"Failed to save feedback: {exc}")
        return
    click.secho("Feedback submitted. Thank you!", fg="green")


@cli.command()
@click.option("--model", "model_name", type=str, default=None, help="Default model (e.g. llama3.2:3b)")
@click.option("--host", type=str, default=None, help="Ollama host")
@click.option("--port", type=int, default=None, help="Ollama port")
@click.option("--timeout", type=int, default=None, help="Generation timeout in seconds")
@click.pass_obj
def configure(obj: dict, model_name: Optional[str], host: Optional[str],
              port: Optional[int], timeout: Optional[int]) -> None:
    """Update the configuration file."""
    path = obj.get("config_path")
    created = write_default_config(path)
    if created is not None:
        click.echo(f"Created configuration at {created}")
    config = load_config(path)
    if model_name:
        config.ai.default_model = model_name
    if host:
        config.ai.ollama.host = host
    if port:
        config.ai.ollama.port = port
    if timeout:
        config.ai.timeout = timeout
    written = save_config(config, path)
    click.echo(
        f"Configuration updated ({written}). Model={config.ai.default_model}, "
        f"Ollama={config.ollama_url}"
    )


@cli.command(name="serve")
@click.option("--host", default="127.0.0.1", help="Bind address for the API server")
@click.option("--port", default=5005, help="Port for the API server")
@click.pass_obj
def serve(obj: dict, host: str, port: int) -> None:
    """Run the API server exposing command generation as JSON."""
    # Import fastapi lazily to avoid mandatory dependency for CLI users
    try:
        import uvicorn

        from .server import create_app
    except ImportError:
        click.echo("FastAPI and uvicorn are required to run the server. Please install them with pip.")
        return

    app = create_app(config=obj["config"])
    click.echo(f"API server running on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
