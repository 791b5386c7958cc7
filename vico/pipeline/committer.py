import logging
import os
from vico.domain.models import EncodeOutcome, EncodePlan, EncodeSuccess, FileReport, FileStatus


def reduction_percent(original_size: int, final_size: int) -> float:
    """100 * (original - final) / original, 0.0 for an empty original."""
    if original_size <= 0:
        return 0.0
    return (original_size - final_size) / original_size * 100.0


def format_reduction(original_size: int, final_size: int) -> str:
    """'40.00%' style; a zero-size original reports '0'."""
    if original_size <= 0:
        return "0"
    return f"{reduction_percent(original_size, final_size):.2f}%"


class ResultCommitter:
    """Finalizes or discards one encode attempt.

    The original is only touched after the temp file has been verified
    non-empty, so a crash before commit leaves it as it was.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def commit(self, plan: EncodePlan, outcome: EncodeOutcome, overwrite: bool, original_size: int) -> FileReport:
        filename = plan.input_path.name

        if not isinstance(outcome, EncodeSuccess):
            if plan.temp_path.exists():
                plan.temp_path.unlink()
            self.logger.error(f"Encode failed: {filename} ({outcome.reason})")
            return FileReport(
                filename=filename,
                path=plan.input_path,
                original_size_bytes=original_size,
                status=FileStatus.FAILED,
                reason=outcome.reason,
            )

        os.replace(plan.temp_path, plan.final_path)

        if overwrite and plan.input_path != plan.final_path and self._is_separate_file(plan):
            plan.input_path.unlink()
            self.logger.info(f"Removed original after replacement: {filename}")

        pct = reduction_percent(original_size, outcome.final_size_bytes)
        self.logger.info(
            f"Committed {filename} -> {plan.final_path.name}: "
            f"{original_size} -> {outcome.final_size_bytes} bytes "
            f"({format_reduction(original_size, outcome.final_size_bytes)})"
        )
        return FileReport(
            filename=filename,
            path=plan.input_path,
            original_size_bytes=original_size,
            final_size_bytes=outcome.final_size_bytes,
            reduction_percent=round(pct, 2),
            avg_fps=outcome.avg_fps,
            status=FileStatus.OK,
        )

    @staticmethod
    def _is_separate_file(plan: EncodePlan) -> bool:
        # On case-insensitive filesystems 'a.MP4' and 'a.mp4' are the same, already replaced file
        if not plan.input_path.exists():
            return False
        return not plan.input_path.samefile(plan.final_path)
