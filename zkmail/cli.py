"""
Command Line Interface for zkmail

Build circuit inputs from .eml files, evaluate them against the pysnark
circuit, render the circom source, and drive snarkjs proving,
verification and toolchain setup.
"""

import logging
import sys
from dataclasses import replace
from pathlib import Path

import click
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ._version import __version__
from .exceptions import ZKMailError

# Setup rich console and logging
console = Console()
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(console=console, rich_tracebacks=True)],
)
logger = logging.getLogger(__name__)


def _load_config(ctx: click.Context):
    from .config import get_config

    try:
        config = get_config(ctx.obj.get("env"))
    except ZKMailError as e:
        raise click.ClickException(f"Configuration error: {e}") from e

    if not ctx.obj.get("logging_configured"):
        _apply_logging(ctx, config)
    return config


def _apply_logging(ctx: click.Context, config) -> None:
    """Configured log level and optional log file; --verbose/--quiet win"""
    root = logging.getLogger()
    if not ctx.obj.get("level_forced"):
        root.setLevel(config.logging.log_level.value)

    if config.logging.log_file:
        handler = logging.FileHandler(config.logging.log_file, encoding="utf-8")
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
        )
        root.addHandler(handler)

    ctx.obj["logging_configured"] = True


def _params(ctx: click.Context, max_len: int | None):
    config = _load_config(ctx)
    circuit = config.circuit
    if max_len is not None:
        circuit = replace(circuit, max_len=max_len)
    try:
        return circuit.to_params(), config
    except ZKMailError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--quiet", "-q", is_flag=True, help="Suppress output")
@click.option(
    "--env",
    type=click.Choice(["development", "testing", "production"]),
    default=None,
    help="Configuration environment (default: $ZKMAIL_ENV)",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, quiet: bool, env: str | None):
    """
    ✉️ zkmail: zero-knowledge proofs of email receipt

    Proves that a committed email buffer contains the sender, recipient and
    domain markers without revealing the message.
    """
    ctx.ensure_object(dict)
    ctx.obj["env"] = env
    ctx.obj["level_forced"] = verbose or quiet

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif quiet:
        logging.getLogger().setLevel(logging.ERROR)

    if not quiet:
        rprint(
            """
[bold blue]✉️ zkmail[/bold blue]
[dim]Zero-knowledge proofs of email receipt[/dim]
        """
        )


@main.command()
@click.argument("eml", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output", "-o", type=click.Path(dir_okay=False), help="Write input.json here"
)
@click.option("--max-len", type=int, default=None, help="Override circuit max_len")
@click.pass_context
def build(ctx: click.Context, eml: str, output: str | None, max_len: int | None):
    """Build the circuit assignment for an .eml file"""
    from .builder import InputBuilder

    params, _ = _params(ctx, max_len)

    try:
        assignment = InputBuilder(params).build_from_file(eml)
    except ZKMailError as e:
        raise click.ClickException(str(e)) from e

    table = Table(title="Circuit Assignment")
    table.add_column("Signal", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("commitment", str(assignment.commitment))
    for p in params.patterns:
        table.add_row(f"{p.name} ({p.text})", f"offset {assignment.pattern_offset(p.name)}")

    console.print(table)

    if output:
        assignment.save(output)
        rprint(f"[green]✓ Inputs written to {output}[/green]")


@main.command()
@click.argument("eml", type=click.Path(exists=True, dir_okay=False))
@click.option("--max-len", type=int, default=None, help="Override circuit max_len")
@click.pass_context
def check(ctx: click.Context, eml: str, max_len: int | None):
    """Build the assignment and evaluate it against the circuit"""
    from .builder import InputBuilder
    from .circuit import EmailCircuit

    params, config = _params(ctx, max_len)

    try:
        assignment = InputBuilder(params).build_from_file(eml)
    except ZKMailError as e:
        raise click.ClickException(str(e)) from e

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task("Evaluating circuit...", total=None)
        circuit = EmailCircuit(params, pin_patterns=config.circuit.pin_patterns)
        run = circuit.evaluate(assignment)

    stats = circuit.stats()
    table = Table(title="Constraint System")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    for key in ("max_len", "chunk_count", "circom_constraints"):
        table.add_row(key, str(stats[key]))
    table.add_row("constraints", str(run.constraints))
    table.add_row("commitment", str(assignment.commitment))
    console.print(table)

    if not run.satisfied:
        for label in run.failed:
            rprint(f"[red]✗ {label}[/red]")
        raise click.ClickException(f"{len(run.failed)} constraint(s) not satisfied")

    rprint("[green]✓ All constraints satisfied[/green]")


@main.command()
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False),
    default="circuits",
    help="Directory for the generated .circom file",
)
@click.option("--max-len", type=int, default=None, help="Override circuit max_len")
@click.pass_context
def circom(ctx: click.Context, output_dir: str, max_len: int | None):
    """Render the circom source of the receiver circuit"""
    from .circom import write_circuit
    from .params import CIRCUIT_NAME

    params, config = _params(ctx, max_len)
    path = Path(output_dir) / f"{CIRCUIT_NAME}.circom"

    try:
        write_circuit(path, params, config.circuit.pin_patterns)
    except (OSError, RuntimeError) as e:
        raise click.ClickException(f"Failed to write circuit: {e}") from e

    rprint(f"[green]✓ Circuit written to {path}[/green]")


@main.command()
@click.argument("eml", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    default="proof.json",
    help="Proof artifact path",
)
@click.option("--ptau", type=click.Path(exists=True), help="Powers of tau file")
@click.option("--force-setup", is_flag=True, help="Recompile circuit and keys")
@click.pass_context
def prove(ctx: click.Context, eml: str, output: str, ptau: str | None, force_setup: bool):
    """Build the assignment for an .eml file and prove it with snarkjs"""
    from .proof_manager import SnarkjsProofManager

    params, config = _params(ctx, None)
    prover = replace(config.prover, ptau_path=ptau) if ptau else config.prover

    manager = SnarkjsProofManager(params, prover, pin_patterns=config.circuit.pin_patterns)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task("Generating Groth16 proof...", total=None)
            artifact = manager.prove_file(eml, force_setup=force_setup)
    except ZKMailError as e:
        logger.error(f"Proving failed: {e}")
        raise click.ClickException(str(e)) from e

    artifact.save(output)
    rprint(f"[green]✓ Proof written to {output}[/green]")
    rprint(f"  commitment: {artifact.commitment}")


@main.command()
@click.argument("proof", type=click.Path(exists=True, dir_okay=False))
@click.option("--vkey", type=click.Path(exists=True), help="verification_key.json")
@click.option("--native", is_flag=True, help="Verify with py_ecc instead of snarkjs")
@click.pass_context
def verify(ctx: click.Context, proof: str, vkey: str | None, native: bool):
    """Verify a proof artifact against its public commitment"""
    from .proof_manager import ProofArtifact, SnarkjsProofManager
    from .verifier import Groth16Verifier, VerificationKey

    params, config = _params(ctx, None)

    try:
        artifact = ProofArtifact.load(proof)
    except (OSError, ValueError, KeyError) as e:
        raise click.ClickException(f"Invalid proof artifact: {e}") from e

    manager = SnarkjsProofManager(
        params, config.prover, pin_patterns=config.circuit.pin_patterns
    )
    if vkey:
        manager.verification_key = Path(vkey)

    try:
        if native:
            verifier = Groth16Verifier(VerificationKey.load(manager.verification_key))
            accepted = verifier.verify(artifact.proof, artifact.public_signals)
        else:
            accepted = manager.verify_proof(artifact)
    except (ZKMailError, OSError, ValueError) as e:
        raise click.ClickException(f"Verification error: {e}") from e

    if not accepted:
        raise click.ClickException(f"Proof rejected for commitment {artifact.commitment}")

    rprint(f"[green]✓ Proof accepted for commitment {artifact.commitment}[/green]")


@main.command()
@click.option(
    "--action",
    type=click.Choice(["check", "zkp", "ptau", "clean"]),
    default="check",
    help="Setup action to perform",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    default="build/pot_final.ptau",
    help="Output path for --action ptau",
)
@click.pass_context
def setup(ctx: click.Context, action: str, output: str):
    """Setup and check the circom / snarkjs toolchain"""
    from .setup import ZKMailSetup

    setup_manager = ZKMailSetup()

    try:
        if action == "check":
            rprint("[bold]🔍 Checking System Requirements[/bold]")
            setup_manager.check_system_requirements()

        elif action == "zkp":
            rprint("[bold]🔐 Setting up ZKP Tools[/bold]")
            success = setup_manager.setup_zkp_tools()
            if success:
                rprint("[green]✓ ZKP tools setup completed[/green]")
            else:
                rprint("[yellow]⚠ ZKP tools setup completed with warnings[/yellow]")

        elif action == "ptau":
            params, config = _params(ctx, None)
            rprint("[bold]🎲 Generating powers of tau[/bold]")
            path = setup_manager.generate_ptau(
                Path(output),
                params,
                snarkjs_path=config.prover.snarkjs_path,
                timeout=config.prover.compile_timeout,
            )
            rprint(f"[green]✓ Set prover.ptau_path to {path}[/green]")

        elif action == "clean":
            rprint("[bold]🧹 Cleaning temporary files[/bold]")
            config = _load_config(ctx)
            setup_manager.clean(Path(config.prover.build_dir))
            rprint("[green]✓ Cleanup completed[/green]")

    except click.ClickException:
        raise
    except Exception as e:
        logger.error(f"Setup failed: {e}")
        raise click.ClickException(f"Setup error: {e}") from e


@main.command()
def info():
    """Display system information and component status"""

    from . import print_system_info

    print_system_info()


def prove_command():
    """Entry point for zkmail-prove command"""
    main(["prove"] + sys.argv[1:])


if __name__ == "__main__":
    main()
