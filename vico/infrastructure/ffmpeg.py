import os
import subprocess
import re
import logging
import time
import threading
import queue
from pathlib import Path
from typing import List, Optional
from vico.domain.models import EncodeFailure, EncodeOutcome, EncodePlan, EncodeSuccess
from vico.domain.errors import RunInterrupted
from vico.domain.events import JobProgressUpdated
from vico.infrastructure.event_bus import EventBus

FPS_RE = re.compile(r"fps=\s*(\d+(?:\.\d+)?)")
FRAME_RE = re.compile(r"frame=\s*(\d+)")
TIME_RE = re.compile(r"time=(\d+):(\d+):(\d+(?:\.\d+)?)")


def parse_fps(line: str) -> Optional[float]:
    match = FPS_RE.search(line)
    if not match:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


def parse_out_time(line: str) -> Optional[float]:
    match = TIME_RE.search(line)
    if not match:
        return None
    h, m, s = match.groups()
    return int(h) * 3600 + int(m) * 60 + float(s)


class FFmpegAdapter:
    """Runs ffmpeg for one EncodePlan and turns the result into an EncodeOutcome.

    Exit codes never leave this class. The temp file is either a complete,
    non-empty encode (success) or gone (failure and interruption).
    """

    def __init__(self, event_bus: Optional[EventBus] = None, ffmpeg_bin: str = "ffmpeg", debug: bool = False):
        self.event_bus = event_bus
        self.ffmpeg_bin = ffmpeg_bin
        self.debug = debug
        self.logger = logging.getLogger(__name__)

    def build_command(self, plan: EncodePlan) -> List[str]:
        return [self.ffmpeg_bin, *plan.to_ffmpeg_args()]

    @staticmethod
    def _remove_temp(tmp_path: Path) -> bool:
        if tmp_path.exists():
            tmp_path.unlink()
            return True
        return False

    def _stop_process(self, process: subprocess.Popen) -> None:
        process.terminate()
        try:
            process.wait(timeout=3)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()

    def encode(self, plan: EncodePlan, cancel_event: Optional[threading.Event] = None) -> EncodeOutcome:
        """Executes the encode. Raises RunInterrupted after cleanup when cancelled."""
        filename = plan.input_path.name
        start_time = time.monotonic()
        cmd = self.build_command(plan)

        if self.debug:
            self.logger.info(f"FFMPEG_START: {filename} (encoder={plan.encoder}, {plan.quality_flag}={plan.quality_value})")
            self.logger.debug(f"FFMPEG_CMD: {' '.join(cmd)}")

        env = None
        if plan.env:
            env = os.environ.copy()
            env.update(plan.env)

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                universal_newlines=True,
                errors="replace",
                bufsize=1,
                env=env,
            )
        except OSError as e:
            self.logger.error(f"ffmpeg could not be started for {filename}: {e}")
            self._remove_temp(plan.temp_path)
            return EncodeFailure(reason=f"ffmpeg could not be started: {e}")

        last_fps: Optional[float] = None
        tail: List[str] = []
        output_queue: "queue.Queue[Optional[str]]" = queue.Queue()

        def _reader():
            try:
                if process.stdout:
                    for line in process.stdout:
                        output_queue.put(line)
            finally:
                output_queue.put(None)

        reader_thread = threading.Thread(target=_reader, daemon=True)
        reader_thread.start()

        interrupted = False
        removed = False
        try:
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    interrupted = True
                    break

                try:
                    line = output_queue.get(timeout=0.1)
                except queue.Empty:
                    if process.poll() is not None and not reader_thread.is_alive():
                        break
                    continue

                if line is None:
                    break

                fps = parse_fps(line)
                if fps is not None:
                    last_fps = fps
                    self._publish_progress(plan, line, fps)
                elif line.strip():
                    tail.append(line.strip())
                    del tail[:-5]

            if not interrupted:
                process.wait()
                # ffmpeg shares our process group and may have died from the same SIGINT
                if cancel_event is not None and cancel_event.is_set():
                    interrupted = True
        except KeyboardInterrupt:
            interrupted = True
        finally:
            if interrupted:
                self.logger.info(f"FFMPEG_INTERRUPTED: {filename}")
                if process.poll() is None:
                    self._stop_process(process)
                removed = self._remove_temp(plan.temp_path)

        elapsed = time.monotonic() - start_time
        if interrupted:
            raise RunInterrupted(removed_temp=plan.temp_path if removed else None)

        return_code = process.returncode
        temp_size = plan.temp_path.stat().st_size if plan.temp_path.exists() else 0

        if return_code == 0 and temp_size > 0:
            if self.debug:
                self.logger.info(f"FFMPEG_END: {filename} status=completed elapsed={elapsed:.2f}s fps={last_fps}")
            return EncodeSuccess(final_size_bytes=temp_size, avg_fps=last_fps)

        if return_code != 0:
            reason = f"ffmpeg exited with code {return_code}"
        else:
            reason = "ffmpeg produced no output"
        if tail:
            self.logger.warning(f"ffmpeg output for {filename}: {' | '.join(tail)}")
        self._remove_temp(plan.temp_path)
        if self.debug:
            self.logger.info(f"FFMPEG_END: {filename} status=failed code={return_code} elapsed={elapsed:.2f}s")
        return EncodeFailure(reason=reason, return_code=return_code)

    def _publish_progress(self, plan: EncodePlan, line: str, fps: float) -> None:
        if self.event_bus is None:
            return
        frame_match = FRAME_RE.search(line)
        self.event_bus.publish(JobProgressUpdated(
            path=plan.input_path,
            fps=fps,
            frame=int(frame_match.group(1)) if frame_match else None,
            out_time_seconds=parse_out_time(line),
        ))
