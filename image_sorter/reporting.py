"""
Text reports printed at the end of a run.
"""

from typing import Dict, Iterable, List, Mapping, Tuple

from .models import Stage
from .stats import PerformanceReport

WIDTH = 60
TOP_ENTRIES = 10
MAX_FAILURE_DETAILS = 10
MEGABYTE = 1024 * 1024


def format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs}s"


def stage_percentages(report: PerformanceReport) -> Dict[Stage, float]:
    """
    Share of the measured time spent in each stage.

    Returns an empty dict when no time was measured; otherwise the values
    add up to 100.
    """
    total = report.total_stage_time
    if total <= 0:
        return {}
    return {stage: report.stage_durations[stage] / total * 100.0 for stage in Stage}


def _percent(part: int, whole: int) -> float:
    return (part / whole * 100.0) if whole else 0.0


def _ranked(counts: Mapping[str, int]) -> List[Tuple[str, int]]:
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


def _line(label: str, value: object = "") -> str:
    return f"  {label:<26}: {value}"


class ReportFormatter:
    """Renders a PerformanceReport as two plain text summaries."""

    def __init__(self, width: int = WIDTH):
        self.width = width

    def _header(self, title: str) -> List[str]:
        return ["=" * self.width, title.center(self.width).rstrip(), "=" * self.width]

    def _ranked_section(self, title: str, counts: Mapping[str, int]) -> Iterable[str]:
        yield ""
        yield _line(title, len(counts))
        for name, count in _ranked(counts)[:TOP_ENTRIES]:
            yield f"    {name:<32} {count:>6}"
        if len(counts) > TOP_ENTRIES:
            yield f"    ... and {len(counts) - TOP_ENTRIES} more"

    def sorting_summary(self, report: PerformanceReport) -> str:
        """Counts of sorted photos by place and by device."""
        discovered = report.photos_discovered
        lines = self._header("IMAGE SORTING REPORT")
        lines += [
            _line("Execution time", format_duration(report.elapsed_seconds)),
            _line("Photos found", discovered),
            _line("Successfully sorted",
                  f"{report.photos_sorted} ({_percent(report.photos_sorted, discovered):.1f}%)"),
            _line("Skipped (errors)",
                  f"{report.total_failures} ({_percent(report.total_failures, discovered):.1f}%)"),
            _line("Without metadata (no EXIF)", report.photos_without_metadata),
            _line("Duplicates renamed", report.duplicates_renamed),
        ]

        if report.places:
            lines += self._ranked_section("Places", report.places)
        if report.devices:
            lines += self._ranked_section("Devices", report.devices)

        if report.oldest_date and report.newest_date:
            lines += ["", _line("Date range", f"{report.oldest_date} -> {report.newest_date}")]

        if report.total_failures:
            lines += ["", "  Failures by stage:"]
            for stage in Stage:
                if report.failures[stage]:
                    lines.append(f"    {stage.label:<32} {report.failures[stage]:>6}")

        lines.append("=" * self.width)

        details = report.failure_details
        if details:
            shown = details[:MAX_FAILURE_DETAILS]
            if len(details) > len(shown):
                lines += ["", f"{len(details)} errors occurred (showing first {len(shown)}):"]
            else:
                lines += ["", "Error details:"]
            lines += [f"  - {detail.path} [{detail.stage.value}]: {detail.reason}" for detail in shown]

        return "\n".join(lines)

    def performance_summary(self, report: PerformanceReport) -> str:
        """Per-stage counts, timings, copy throughput and time breakdown."""
        lines = self._header("PERFORMANCE REPORT")

        for stage in Stage:
            count = report.stage_count(stage)
            if not count:
                continue
            total = report.stage_durations[stage]
            lines += [
                _line(f"{stage.label} operations", count),
                _line("  Total time", f"{total:.2f}s"),
                _line("  Average", f"{total / count * 1000:.1f}ms"),
            ]
            if stage is Stage.GEOCODE:
                hit_rate = _percent(report.cache_hits, report.geocode_lookups)
                lines.append(_line("  Cache hits", f"{report.cache_hits} ({hit_rate:.1f}%)"))
            if stage is Stage.COPY:
                megabytes = report.bytes_copied / MEGABYTE
                throughput = megabytes / total if total > 0 else 0.0
                lines += [
                    _line("  Total size", f"{megabytes:.2f} MB"),
                    _line("  Throughput", f"{throughput:.2f} MB/s"),
                ]
            lines.append("")

        percentages = stage_percentages(report)
        if percentages:
            lines.append("  Time breakdown:")
            for stage, share in percentages.items():
                lines.append(f"    {stage.label:<24}: {share:5.1f}%")
        else:
            lines.append("  No stage time measured.")

        lines.append("=" * self.width)
        return "\n".join(lines)
