# release_guard/cli/commands/doctor.py
"""System diagnostic command"""

import shutil
import sys

import click
from rich import box
from rich.table import Table

from ..utils.output import console, print_success
from ...constants import ExitCode
from ...core import PathResolver, VersionLedger
from ...exceptions import ConfigError, LedgerError


class DiagnosticCheck:
    """Base class for diagnostic checks"""

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description
        self.passed = False
        self.message = ""
        self.fixes = []

    def run(self, ctx) -> 'DiagnosticCheck':
        """Run the diagnostic check"""
        raise NotImplementedError

    def fix(self, ctx) -> bool:
        """Attempt to fix the issue"""
        return False


class ConfigCheck(DiagnosticCheck):
    """Check that the configuration loads"""

    def __init__(self):
        super().__init__(
            "Configuration",
            "Load and validate the configuration file"
        )

    def run(self, ctx):
        try:
            config = ctx.obj.load_config()
        except ConfigError as e:
            self.passed = False
            self.message = str(e)
            return self

        if not config.units:
            self.passed = False
            self.message = "No units configured; every run needs --unit"
        else:
            self.passed = True
            self.message = f"Environment '{config.environment.name}', {len(config.units)} unit(s)"
        return self


class DockerCheck(DiagnosticCheck):
    """Check the docker CLI and compose file"""

    def __init__(self):
        super().__init__(
            "Container Runtime",
            "Verify the docker CLI and compose file are present"
        )

    def run(self, ctx):
        config = ctx.obj.config
        binary = config.runtime.docker_binary

        if shutil.which(binary) is None:
            self.passed = False
            self.message = f"docker CLI not found: {binary}"
        elif not config.compose_path.exists():
            self.passed = False
            self.message = f"Compose file missing: {config.compose_path}"
        else:
            self.passed = True
            self.message = f"{binary} with {config.compose_path.name}"
        return self


class StateDirCheck(DiagnosticCheck):
    """Check the state directory is writable and the ledger readable"""

    def __init__(self):
        super().__init__(
            "State Directory",
            "Verify backups, reports and ledger can be written"
        )

    def run(self, ctx):
        paths = PathResolver(ctx.obj.config.state_dir)

        if not paths.state_dir.exists():
            self.passed = False
            self.message = f"Missing: {paths.state_dir}"
            self.fixes = [f"Create {paths.state_dir}"]
            return self

        try:
            probe = paths.state_dir / ".permission_test"
            probe.touch()
            probe.unlink()
        except OSError as e:
            self.passed = False
            self.message = f"Not writable: {e}"
            return self

        try:
            record = VersionLedger(paths.ledger_path).load()
        except LedgerError as e:
            self.passed = False
            self.message = str(e)
            return self

        self.passed = True
        self.message = f"{paths.state_dir} (current tag: {record.current_tag or 'none'})"
        return self

    def fix(self, ctx):
        PathResolver(ctx.obj.config.state_dir).ensure_directories()
        return True


class IntegrationsCheck(DiagnosticCheck):
    """Check quality gate and status reporting settings"""

    def __init__(self):
        super().__init__(
            "Integrations",
            "Verify quality gate and commit status settings"
        )

    def run(self, ctx):
        config = ctx.obj.config
        notes = []
        problems = []

        if config.gate.enabled:
            notes.append(f"gate at {config.gate.url}")
            if not config.gate.token:
                problems.append("gate token not set")
        else:
            notes.append("gate disabled")

        if config.status.enabled:
            notes.append(f"status on {config.status.repository}")
            if not config.status.token:
                problems.append("status token not set")
        else:
            notes.append("status reporting disabled")

        self.passed = not problems
        self.message = ", ".join(problems or notes)
        return self


@click.command()
@click.option('--fix', is_flag=True, help='Attempt to fix issues automatically')
@click.pass_context
def doctor(ctx, fix):
    """Run system diagnostics

    Checks that the configuration loads, the container runtime is usable,
    the state directory is writable and integrations are complete.

    Examples:

        release-guard doctor
        release-guard doctor --fix
    """
    console.print("[bold]Release Guard Diagnostics[/bold]\n")

    checks = [ConfigCheck().run(ctx)]
    if checks[0].passed or ctx.obj.config_loaded:
        checks += [
            DockerCheck().run(ctx),
            StateDirCheck().run(ctx),
            IntegrationsCheck().run(ctx),
        ]

    failed_checks = [c for c in checks if not c.passed]

    # Display results
    table = Table(title="Diagnostic Results", box=box.ROUNDED)
    table.add_column("Check", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Details")

    for diagnostic_check in checks:
        status = "[green]✓ PASS[/green]" if diagnostic_check.passed else "[red]✗ FAIL[/red]"
        table.add_row(diagnostic_check.name, status, diagnostic_check.message)

    console.print(table)

    # Attempt fixes if requested
    if fix and failed_checks:
        console.print("\n[yellow]Attempting automatic fixes...[/yellow]\n")

        for diagnostic_check in failed_checks:
            if diagnostic_check.fixes:
                if diagnostic_check.fix(ctx):
                    print_success(f"Fixed: {diagnostic_check.name}")
                else:
                    console.print(f"[red]✗[/red] Could not fix: {diagnostic_check.name}")

    if failed_checks and not fix:
        console.print(f"\n[red]{len(failed_checks)} check(s) failed[/red]")
        console.print("Run with --fix to attempt automatic fixes")
        sys.exit(ExitCode.FAILED)
    elif failed_checks:
        console.print("\nRun doctor again to confirm the fixes")
    else:
        console.print("\n[green]All checks passed[/green]")
