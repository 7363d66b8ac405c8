"""CLI entry point: cargo-bounds, also runnable as ``cargo bounds``.

Subcommands:
    cargo bounds test                  # probe the edges of every declared range
    cargo bounds test -d serde -m      # every minor version of one dependency
    cargo bounds minimize [DEP]        # search for the lowest working versions
"""

from __future__ import annotations

import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import click

from cargo_bounds.core.config import Settings
from cargo_bounds.core.logging import setup_logging
from cargo_bounds.engine import BoundsChecker
from cargo_bounds.exceptions import BoundsError
from cargo_bounds.manifest import DEP_SECTIONS, CargoManifest, ManifestState
from cargo_bounds.models import BoundResult, DependencyReport, Outcome
from cargo_bounds.progress import ProbeProgress
from cargo_bounds.registry import CratesIoClient
from cargo_bounds.report import render_bound, render_dependency
from cargo_bounds.tester import Granularity


_OUTCOME_COLORS = {Outcome.OK: "green", Outcome.FAILED: "red", Outcome.ERROR: "yellow"}

_GRAPH_CONFLICT_HINT = (
    "  ERROR means the dependency graph refused the pin; "
    "treat it as a signal to raise your floor, not a confirmed failure."
)


@dataclass
class CliOptions:
    manifest_path: Path
    sections: tuple[str, ...]
    include_yanked: bool
    verbose: bool
    settings: Settings


def _make_checker(opts: CliOptions) -> BoundsChecker:
    registry = CratesIoClient(
        base_url=opts.settings.registry_url,
        user_agent=opts.settings.user_agent,
        request_interval=opts.settings.request_interval,
        include_yanked=opts.include_yanked,
    )
    checker = BoundsChecker(
        CargoManifest(opts.manifest_path),
        registry,
        sections=opts.sections,
        default_command=opts.settings.check_command,
    )
    if opts.verbose:
        checker.tracker.callbacks.append(_echo_progress)
    return checker


def _echo_progress(p: ProbeProgress) -> None:
    if p.status == "running" and p.last_line:
        click.echo(f"  [{p.dependency} {p.version}] {p.last_line}", err=True)


@contextmanager
def _guarded(manifest_path: Path) -> Iterator[None]:
    """Restore Cargo.toml and Cargo.lock however the run ends.

    SIGTERM is turned into SystemExit so the restore runs; SIGKILL cannot be
    handled and leaves the last pin in place.
    """
    state = ManifestState.store(manifest_path)

    def _terminate(signum, frame):
        raise SystemExit(128 + signum)

    previous = signal.signal(signal.SIGTERM, _terminate)
    try:
        yield
    finally:
        state.restore()
        signal.signal(signal.SIGTERM, previous)


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging and oracle output")
@click.option(
    "--manifest-path",
    default="Cargo.toml",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to Cargo.toml",
)
@click.option("--dev", is_flag=True, help="Also check dev- and build-dependencies")
@click.option("--include-yanked", is_flag=True, help="Consider yanked versions too")
@click.pass_context
def main(
    ctx: click.Context,
    verbose: bool,
    manifest_path: Path,
    dev: bool,
    include_yanked: bool,
) -> None:
    """cargo-bounds: check that your dependency bounds actually build."""
    setup_logging(verbose)
    ctx.obj = CliOptions(
        manifest_path=manifest_path,
        sections=DEP_SECTIONS if dev else ("dependencies",),
        include_yanked=include_yanked,
        verbose=verbose,
        settings=Settings.from_env(),
    )


@main.command("test")
@click.option("-m", "--minor", is_flag=True, help="Test minor versions as well")
@click.option("-p", "--patch", is_flag=True, help="Test patch versions as well (implies --minor)")
@click.option("-s", "--print-skipped", is_flag=True, help="Print the versions that aren't tested")
@click.option("-d", "--dep", default=None, help="Test a specific dependency")
@click.option(
    "-c",
    "--command",
    default=None,
    help='Overwrite the check command (default: "cargo check --all-features")',
)
@click.pass_obj
def test_cmd(
    opts: CliOptions,
    minor: bool,
    patch: bool,
    print_skipped: bool,
    dep: str | None,
    command: str | None,
) -> None:
    """Test if your current dependency bounds are valid."""
    granularity = Granularity.EPOCH
    if patch:
        granularity = Granularity.PATCH
    elif minor:
        granularity = Granularity.MINOR

    def on_report(report: DependencyReport) -> None:
        _echo_report(report, print_skipped)

    checker = _make_checker(opts)
    try:
        with _guarded(opts.manifest_path):
            specs = checker.dependencies(dep)
            if not specs:
                click.secho("No dependencies", fg="bright_red")
                return
            run = checker.test(specs, command, granularity=granularity, on_report=on_report)
    except BoundsError as exc:
        _fail(str(exc))
    finally:
        checker.registry.close()

    if not run.overall_pass:
        click.secho(run.summary(), fg="red", err=True)
        sys.exit(1)
    click.secho(f"All {len(run.dependencies)} deps passed.", fg="green")


@main.command("minimize")
@click.argument("dep", required=False)
@click.option("-s", "--skip-sanity", is_flag=True, help="Skip the sanity check")
@click.option("--widen", is_flag=True, help="Also search published versions below the declared floor")
@click.option("--write", "write", is_flag=True, help="Write the minimized floors to Cargo.toml")
@click.pass_obj
def minimize_cmd(
    opts: CliOptions,
    dep: str | None,
    skip_sanity: bool,
    widen: bool,
    write: bool,
) -> None:
    """Find the most flexible range you could support."""
    checker = _make_checker(opts)
    try:
        with _guarded(opts.manifest_path):
            specs = checker.dependencies(dep)
            if not specs:
                click.secho("No dependencies", fg="bright_red")
                return
            bounds = checker.minimize(
                specs, skip_sanity=skip_sanity, widen=widen, on_bound=_echo_bound
            )
        if write:
            for spec in checker.write_bounds(bounds):
                click.echo(f"Wrote {spec.name} = \"{spec.req.with_floor(bounds[spec].floor)}\"")
    except BoundsError as exc:
        _fail(str(exc))
    finally:
        checker.registry.close()

    unsafe = [b for b in bounds.values() if not b.sane]
    if unsafe:
        click.echo(
            f"{click.style(str(len(unsafe)), fg='red')} minimized bounds failed the sanity check.",
            err=True,
        )
        sys.exit(1)


def _echo_report(report: DependencyReport, print_skipped: bool) -> None:
    lines = render_dependency(report, print_skipped)
    click.secho(lines[0], fg="blue")
    if report.error:
        click.secho(lines[1], fg="bright_red")
        return
    for line in lines[1:]:
        token = line.rsplit(" ", 1)[-1]
        color = "bright_black"
        if token in Outcome.__members__:
            color = _OUTCOME_COLORS[Outcome(token)]
        click.secho(line, fg=color)
    if any(r.outcome is Outcome.ERROR for r in report.results):
        click.secho(_GRAPH_CONFLICT_HINT, fg="yellow")


def _echo_bound(bound: BoundResult) -> None:
    lines = render_bound(bound)
    click.secho(lines[0], fg="blue")
    for line in lines[1:]:
        color = None
        if "UNSAFE" in line or "unresolvable" in line or line.endswith(" FAILED"):
            color = "red"
        elif line.endswith(" OK") or "floor" in line:
            color = "green"
        click.secho(line, fg=color)


def run() -> None:
    """Console-script entry point; drops the ``bounds`` argument cargo passes."""
    args = sys.argv[1:]
    if args and args[0] == "bounds":
        args = args[1:]
    main(args=args, prog_name="cargo bounds")


if __name__ == "__main__":
    run()
