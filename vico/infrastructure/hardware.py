import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Set
from vico.domain.models import CpuBackend, HardwareBackend, NvencBackend, QsvBackend, VaapiBackend

INTEL_VENDOR_ID = "0x8086"

# " V....D h264_nvenc           NVIDIA NVENC H.264 encoder"
ENCODER_LINE_RE = re.compile(r"^\s*[A-Z\.]{6}\s+(\S+)\s+")


class HardwareProbe:
    """Picks a hardware encoding backend: NVENC, then QuickSync, then VAAPI, then CPU.

    Never raises. Missing tools, unreadable sysfs entries or timeouts simply
    remove that backend from consideration.
    """

    def __init__(
        self,
        ffmpeg_bin: str = "ffmpeg",
        drm_sys_root: Path = Path("/sys/class/drm"),
        dri_dev_root: Path = Path("/dev/dri"),
        dev_root: Path = Path("/dev"),
        timeout_s: float = 10.0,
    ):
        self.ffmpeg_bin = ffmpeg_bin
        self.drm_sys_root = drm_sys_root
        self.dri_dev_root = dri_dev_root
        self.dev_root = dev_root
        self.timeout_s = timeout_s
        self.logger = logging.getLogger(__name__)

    def list_encoders(self) -> Set[str]:
        """Encoder names compiled into ffmpeg. Empty set on any error."""
        try:
            result = subprocess.run(
                [self.ffmpeg_bin, "-hide_banner", "-encoders"],
                capture_output=True,
                text=True,
                errors="replace",
                stdin=subprocess.DEVNULL,
                timeout=self.timeout_s,
            )
        except (OSError, subprocess.SubprocessError) as e:
            self.logger.debug(f"Encoder listing failed: {e}")
            return set()
        if result.returncode != 0:
            return set()

        encoders = set()
        for line in result.stdout.splitlines():
            match = ENCODER_LINE_RE.match(line)
            if match:
                encoders.add(match.group(1))
        return encoders

    def nvidia_present(self) -> bool:
        if shutil.which("nvidia-smi"):
            return True
        return (self.dev_root / "nvidia0").exists() or (self.dev_root / "nvidiactl").exists()

    def render_nodes(self) -> List[Path]:
        """Render device nodes under /dev/dri, lexical order."""
        try:
            return sorted(self.dri_dev_root.glob("renderD*"))
        except OSError:
            return []

    def _read_vendor(self, node_name: str) -> Optional[str]:
        vendor_file = self.drm_sys_root / node_name / "device" / "vendor"
        try:
            return vendor_file.read_text().strip().lower()
        except OSError:
            return None

    def find_intel_render_node(self) -> Optional[Path]:
        try:
            sys_nodes = sorted(self.drm_sys_root.glob("renderD*"))
        except OSError:
            return None
        for sys_node in sys_nodes:
            if self._read_vendor(sys_node.name) != INTEL_VENDOR_ID:
                continue
            # sysfs can list nodes a container never gets under /dev/dri
            dev_node = self.dri_dev_root / sys_node.name
            if dev_node.exists():
                return dev_node
            self.logger.debug(f"Intel render node {sys_node.name} has no device file at {dev_node}")
        return None

    def detect(self, disable_hardware: bool = False) -> HardwareBackend:
        if disable_hardware:
            self.logger.info("Hardware acceleration disabled, using CPU")
            return CpuBackend()

        encoders = self.list_encoders()
        self.logger.debug(f"Compiled encoders: {len(encoders)}")

        if any(name.endswith("_nvenc") for name in encoders) and self.nvidia_present():
            self.logger.info("Hardware backend: NVENC")
            return NvencBackend()

        # Vendor check keeps AMD-only hosts that expose *_qsv builds off this path
        intel_node = self.find_intel_render_node()
        if intel_node is not None and any(name.endswith("_qsv") for name in encoders):
            self.logger.info(f"Hardware backend: QuickSync on {intel_node}")
            return QsvBackend(device=intel_node)

        if any(name.endswith("_vaapi") for name in encoders):
            nodes = self.render_nodes()
            if nodes:
                self.logger.info(f"Hardware backend: VAAPI on {nodes[0]}")
                return VaapiBackend(device=nodes[0])

        self.logger.info("No usable hardware encoder found, using CPU")
        return CpuBackend()
