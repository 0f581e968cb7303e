"""
Summary report rendering.
"""

from __future__ import annotations

from backupverify.core.models import Summary


class ReportRenderer:
    """Renders a run Summary for people or for scripts."""

    # (label, machine key, getter) in output order
    FIELDS = (
        ("Items checked", "items", lambda s: s.item_count),
        ("Differences", "diffs", lambda s: s.diff_count),
        ("Similar", "similar", lambda s: s.similar_count),
        ("Skipped", "skipped", lambda s: s.skipped_count),
        ("Errors", "errors", lambda s: s.error_count),
        ("Symlink errors", "symerrors", lambda s: s.symlink_error_count),
        ("Symlink mismatches", "symmismatches", lambda s: s.symlink_mismatch_count),
    )

    def render(self, summary: Summary, machine_readable: bool = False) -> str:
        if machine_readable:
            return self.render_machine(summary)
        return self.render_human(summary)

    def render_human(self, summary: Summary) -> str:
        """Multi-line report with one labelled count per line."""
        width = max(len(label) for label, _, _ in self.FIELDS) + 1
        lines = [f"{label + ':':<{width}} {getter(summary)}" for label, _, getter in self.FIELDS]
        lines.append(f"{'Difference:':<{width}} {summary.diff_percent:.2f}%")
        if summary.cancelled:
            lines.append("Verification was cancelled; counts are incomplete.")
        return "\n".join(lines)

    def render_machine(self, summary: Summary) -> str:
        """
        Single-line key:value record.

        Field order is fixed so scripts can split on spaces.
        """
        parts = [f"{key}:{getter(summary)}" for _, key, getter in self.FIELDS]
        parts.append(f"diffpercent:{summary.diff_percent:.2f}")
        if summary.cancelled:
            parts.append("cancelled:1")
        return " ".join(parts)
