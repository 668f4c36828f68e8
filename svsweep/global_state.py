"""Global state variables"""

from __future__ import annotations

# Updated upon initialization during cli.py and referenced by components that
# are not handed an explicit throttler.
import pathlib
import time
from dataclasses import dataclass, field

from svsweep.throttle import MessageThrottler


@dataclass
class GlobalStateProvider:
    output_dir: pathlib.Path = field(default_factory=pathlib.Path.cwd)
    start_time: float = field(default_factory=time.time)
    throttler: MessageThrottler = field(default_factory=MessageThrottler)

    @property
    def log_filepath(self) -> pathlib.Path:
        return self.output_dir / "svsweep.log"

    def timed_task_log(self, task_desc: str) -> str:
        return f"#TIME {time.time() - self.start_time:.4f}s: {task_desc}"


STATE_PROVIDER = GlobalStateProvider()
