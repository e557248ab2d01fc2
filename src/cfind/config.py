"""Configuration for cfind."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Config:
    """Search and rendering tunables."""

    debounce_ms: int = 400
    max_matches: int = 100
    settle_frames: int = 4
    frame_interval_s: float = 1 / 60
    retry_delay_ms: int = 200
    retry_count: int = 1
    paint_retry_limit: int = 5
    paint_retry_delay_ms: int = 50

    @property
    def debounce_s(self) -> float:
        return self.debounce_ms / 1000

    @property
    def retry_delay_s(self) -> float:
        return self.retry_delay_ms / 1000

    @property
    def paint_retry_delay_s(self) -> float:
        return self.paint_retry_delay_ms / 1000
