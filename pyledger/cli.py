"""CLI interface for the password ledger."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import click

from .api import LedgerClient
from .config import config
from .exceptions import LedgerAPIError
from .output import OutputFormatter
from .result import Err, Ok, Result
from .session import LedgerSession

logger = logging.getLogger(__name__)

SessionOperation = Callable[[LedgerSession], Awaitable[Result[Any]]]


def _master_password(ctx: Any) -> str:
    """Get the master password from the options or prompt for it."""
    master_password = ctx.obj.get("master_password")
    if not master_password:
        master_password = click.prompt("Master password", hide_input=True)
        ctx.obj["master_password"] = master_password
    return master_password


def run_in_session(ctx: Any, operation: SessionOperation) -> Any:
    """Open a ledger session, run one operation and return its value.

    Exits with status 1 and prints the error if opening the ledger or the
    operation fails.

    Args:
        ctx: Click context
        operation: Coroutine function receiving the open session

    Returns:
        The operation's Ok value
    """
    out: OutputFormatter = ctx.obj["out"]
    master_password = _master_password(ctx)

    try:
        client = LedgerClient(api_url=ctx.obj.get("api_url"))
    except LedgerAPIError as e:
        out.error(str(e))
        ctx.exit(1)

    async def _run() -> Result[Any]:
        async with LedgerSession(client) as session:
            opened = await session.open(master_password)
            if opened.is_err:
                return opened
            return await operation(session)

    result = asyncio.run(_run())
    if result.is_err:
        out.error(result.message)
        ctx.exit(1)
    return result.value


async def _loaded_entries(session: LedgerSession) -> Result[Any]:
    session.cache.load()
    state = await session.cache.wait()
    if state.error:
        return Err.rejected(state.error, command="list")
    return Ok(state.entries)


@click.group()
@click.option(
    "--api-url",
    "-u",
    envvar="PYLEDGER_API_URL",
    help="URL of the ledger command endpoint",
)
@click.option(
    "--master-password",
    envvar="PYLEDGER_MASTER_PASSWORD",
    help="Master password (prompted for if omitted)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pyledger")
@click.pass_context
def main(
    ctx: Any,
    api_url: Optional[str],
    master_password: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """PyLedger - Manage and sync the entries of a password ledger."""
    ctx.ensure_object(dict)
    ctx.obj["api_url"] = api_url
    ctx.obj["master_password"] = master_password
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pyledger").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--api-url",
    "-u",
    prompt="Ledger endpoint URL",
    default=lambda: config.api_url,
    help="URL of the ledger command endpoint",
)
@click.option("--ledger-name", help="Ledger collection to open by default")
@click.pass_context
def init(ctx: Any, api_url: str, ledger_name: Optional[str]) -> None:
    """Save the endpoint URL to ~/.config/pyledger/config."""
    out: OutputFormatter = ctx.obj["out"]

    values = {"api_url": api_url}
    if ledger_name:
        values["ledger_name"] = ledger_name

    try:
        config.save(**values)
    except OSError as e:
        out.error(f"Could not write configuration: {e}")
        ctx.exit(1)

    out.success("✓ Configuration saved successfully")
    out.info(f"Config file: {config.get_config_path()}")


@main.command(name="ls")
@click.pass_context
def ls(ctx: Any) -> None:
    """List entries and whether they have a conflict."""
    out: OutputFormatter = ctx.obj["out"]
    entries = run_in_session(ctx, _loaded_entries)

    rows = [
        {"label": entry.label, "has_conflict": entry.has_conflict}
        for entry in entries
    ]
    if out.json_output:
        out.output_json(rows)
        return
    if not rows:
        out.warning("No entries found")
        return

    out.output_table(
        [
            {"label": row["label"], "conflict": "yes" if row["has_conflict"] else ""}
            for row in rows
        ],
        ["label", "conflict"],
        {"label": "Label", "conflict": "Conflict"},
    )


@main.command()
@click.argument("label")
@click.pass_context
def show(ctx: Any, label: str) -> None:
    """Print the secret stored under LABEL."""
    out: OutputFormatter = ctx.obj["out"]

    async def _read(session: LedgerSession) -> Result[str]:
        return await session.entries.read_secret(label)

    secret = run_in_session(ctx, _read)
    if out.json_output:
        out.output_json({"label": label, "secret": secret})
    else:
        out.print(secret)


@main.command()
@click.argument("label")
@click.option("--value", help="Secret to store (generated if omitted)")
@click.option(
    "--set",
    "prompt_value",
    is_flag=True,
    help="Prompt for the secret instead of generating one",
)
@click.pass_context
def add(ctx: Any, label: str, value: Optional[str], prompt_value: bool) -> None:
    """Add an entry named LABEL."""
    out: OutputFormatter = ctx.obj["out"]

    if prompt_value and value is None:
        value = click.prompt("Secret", hide_input=True, confirmation_prompt=True)

    async def _create(session: LedgerSession) -> Result[None]:
        return await session.entries.create(label, value)

    run_in_session(ctx, _create)
    if out.json_output:
        out.output_json({"added": label})
    else:
        out.success(f"✓ Added '{label}'")


@main.command()
@click.pass_context
def generate(ctx: Any) -> None:
    """Generate a password without storing it."""
    out: OutputFormatter = ctx.obj["out"]

    async def _generate(session: LedgerSession) -> Result[str]:
        return await session.entries.generate()

    password = run_in_session(ctx, _generate)
    if out.json_output:
        out.output_json({"password": password})
    else:
        out.print(password)


@main.command()
@click.argument("label")
@click.pass_context
def regen(ctx: Any, label: str) -> None:
    """Replace the secret of LABEL with a generated one."""
    out: OutputFormatter = ctx.obj["out"]

    async def _regenerate(session: LedgerSession) -> Result[None]:
        return await session.entries.regenerate(label)

    run_in_session(ctx, _regenerate)
    if out.json_output:
        out.output_json({"regenerated": label})
    else:
        out.success(f"✓ Regenerated '{label}'")


@main.command()
@click.argument("label")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def rm(ctx: Any, label: str, yes: bool) -> None:
    """Delete the entry LABEL."""
    out: OutputFormatter = ctx.obj["out"]

    if not yes and not click.confirm(f"Delete '{label}'?"):
        out.info("Cancelled")
        return

    async def _remove(session: LedgerSession) -> Result[None]:
        return await session.entries.remove(label)

    run_in_session(ctx, _remove)
    if out.json_output:
        out.output_json({"removed": label})
    else:
        out.success(f"✓ Removed '{label}'")


@main.command()
@click.pass_context
def conflicts(ctx: Any) -> None:
    """List entries whose local and remote copies disagree."""
    out: OutputFormatter = ctx.obj["out"]

    async def _conflicts(session: LedgerSession) -> Result[list[str]]:
        loaded = await _loaded_entries(session)
        if loaded.is_err:
            return loaded
        return Ok(session.registry.ordered_labels())

    labels = run_in_session(ctx, _conflicts)
    if out.json_output:
        out.output_json(labels)
        return
    if not labels:
        out.success("✓ No conflicts")
        return

    out.warning(f"Conflicting entries: {len(labels)}")
    for label in labels:
        out.print(f"  • {label}")
    out.info("Run 'pyledger resolve LABEL' to pick the correct value")


@main.command()
@click.argument("label")
@click.option(
    "--keep",
    type=click.Choice(["local", "remote"]),
    help="Which value to keep (asked interactively if omitted)",
)
@click.pass_context
def resolve(ctx: Any, label: str, keep: Optional[str]) -> None:
    """Resolve the conflict of LABEL by keeping one of its two values."""
    out: OutputFormatter = ctx.obj["out"]

    async def _resolve(session: LedgerSession) -> Result[Any]:
        flow = session.resolution
        flow.reveal(label)
        state = await flow.wait()
        if state.pair is None:
            return Err.rejected(
                session.errors.message or f"Could not reveal '{label}'",
                command="get_conf_pair",
            )

        pair = state.pair
        choice = keep
        if choice is None:
            out.print(f"Select the correct value for {label}")
            out.print(f"  local:  {pair.local_value}")
            out.print(f"  remote: {pair.remote_value}")
            if state.ambiguous:
                out.warning("Both values are identical")
            choice = click.prompt(
                "Keep", type=click.Choice(["local", "remote"]), default="local"
            )

        flow.select(pair.local_value if choice == "local" else pair.remote_value)
        # Identical values always commit the local copy
        kept = "local" if flow.state.keep_original else "remote"
        result = await flow.resolve()
        if result is None or result.is_err:
            return result or Err.rejected("Nothing selected", command="resolve_conflict")

        await session.cache.wait()
        return Ok(kept)

    kept = run_in_session(ctx, _resolve)
    if out.json_output:
        out.output_json({"resolved": label, "kept": kept})
    else:
        out.success(f"✓ Resolved '{label}' keeping the {kept} value")


@main.command()
@click.option(
    "--temp-password",
    prompt="Temporary password",
    hide_input=True,
    confirmation_prompt=True,
    help="Password protecting the upload",
)
@click.pass_context
def upload(ctx: Any, temp_password: str) -> None:
    """Upload the ledger to the sync server."""
    out: OutputFormatter = ctx.obj["out"]

    async def _upload(session: LedgerSession) -> Result[Any]:
        return await session.sync.upload(temp_password)

    response = run_in_session(ctx, _upload)
    if out.json_output:
        out.output_json({"pin": response.pin})
        return
    out.success(f"✓ Uploaded. Your pin is {response.pin}")
    out.info(
        "Use the pin and your temporary password to download your "
        "passwords from the server."
    )


@main.command()
@click.option("--pin", prompt="Pin", help="Pin returned by the upload")
@click.option(
    "--temp-password",
    prompt="Temporary password",
    hide_input=True,
    help="Temporary password used for the upload",
)
@click.pass_context
def download(ctx: Any, pin: str, temp_password: str) -> None:
    """Download and merge a ledger from the sync server."""
    out: OutputFormatter = ctx.obj["out"]

    async def _download(session: LedgerSession) -> Result[Any]:
        result = await session.sync.download(temp_password, pin)
        if result.is_err:
            return result
        await session.cache.wait()
        return Ok(session.registry.ordered_labels())

    conflicting = run_in_session(ctx, _download)
    if out.json_output:
        out.output_json({"downloaded": True, "conflicts": conflicting})
        return
    out.success("✓ Download merged")
    if conflicting:
        out.warning(
            f"Conflicting entries after merge: {len(conflicting)}. "
            "Run 'pyledger conflicts' to review them."
        )


@main.command(name="export")
@click.pass_context
def export_ledger(ctx: Any) -> None:
    """Export the ledger to a zip archive on the backend host."""
    out: OutputFormatter = ctx.obj["out"]

    async def _export(session: LedgerSession) -> Result[None]:
        return await session.entries.export()

    run_in_session(ctx, _export)
    if out.json_output:
        out.output_json({"exported": True})
    else:
        out.success("✓ Ledger exported")


if __name__ == "__main__":
    main()
