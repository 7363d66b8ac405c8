"""Report aggregation and the plain-text report format."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from cargo_bounds.models import (
    BoundResult,
    DependencyReport,
    DependencySpec,
    ProbeResult,
    RunReport,
)


def finalize(
    outcomes: Iterable[ProbeResult],
    specs: Sequence[DependencySpec],
    errors: Mapping[DependencySpec, str] | None = None,
    bounds: Sequence[BoundResult] = (),
) -> RunReport:
    """Group probe results by dependency, in manifest order, ascending by version.

    Results are matched to a spec by (section, name); a crate listed in two
    dependency tables gets two reports.

    *errors* carries per-dependency problems (such as an empty universe) that
    produced no probes; they are reported but do not count as failures.
    """
    errors = errors or {}
    by_dep: dict[tuple[str, str], dict] = {(spec.section, spec.name): {} for spec in specs}
    for result in outcomes:
        by_dep.setdefault((result.section, result.dependency), {})[result.version] = result

    reports = [
        DependencyReport(
            spec=spec,
            results=sorted(by_dep[spec.section, spec.name].values(), key=lambda r: r.version),
            error=errors.get(spec),
        )
        for spec in specs
    ]
    return RunReport(dependencies=reports, bounds=list(bounds))


def header_line(spec: DependencySpec) -> str:
    return f"{spec.name} - {spec.req}"


def result_line(result: ProbeResult) -> str:
    return f"  {result.version} {result.outcome.value}"


def render_dependency(report: DependencyReport, print_skipped: bool = False) -> list[str]:
    """Render the literal per-dependency report block.

    With *print_skipped*, untested versions are listed bare among the results,
    all in ascending version order.
    """
    lines = [header_line(report.spec)]
    if report.error:
        lines.append(f"  {report.error}")
        return lines
    rows = [(r.version, result_line(r)) for r in report.results]
    if print_skipped:
        rows += [(v, f"  {v}") for v in report.skipped]
    lines.extend(line for _, line in sorted(rows, key=lambda row: row[0]))
    return lines


def render_bound(bound: BoundResult) -> list[str]:
    lines = [header_line(bound.spec)]
    if bound.error:
        lines.append(f"  {bound.error}")
        return lines
    for bucket in bound.buckets:
        if bucket.unresolvable:
            lines.append(f"  {bucket.epoch}: unresolvable (anchor {bucket.ceiling} failed)")
        else:
            lines.append(f"  {bucket.epoch}: floor {bucket.floor} ({len(bucket.probes)} probes)")
    if bound.requirement is None:
        lines.append("  no compatible version found")
        return lines
    if bound.sanity_skipped:
        lines.append(f"  {bound.requirement}")
        return lines
    lines.append(f"  {bound.requirement} - sanity check")
    lines.extend(result_line(r) for r in bound.sanity)
    if not bound.sane:
        unsafe = ", ".join(str(v) for v in bound.unsafe_versions)
        lines.append(f"  UNSAFE: {unsafe} failed inside the minimized bound")
    return lines
