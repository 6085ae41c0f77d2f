"""Floor scale integration.

The scale streams one reading per line over a serial port, e.g.
"ST,+  1.234kg\\r\\n". A background thread keeps only the newest weight;
the kiosk polls it.
"""

import random
import re
import threading
from datetime import datetime, timezone
from typing import Optional

import serial

from core.observability import get_logger

logger = get_logger(__name__)


WEIGHT_RE = re.compile(r"([\d.]+)\s*(?:kg)?", re.IGNORECASE)

# Seconds for serial.readline
READ_TIMEOUT = 1.0


def parse_scale_weight(raw: str) -> Optional[float]:
    """Weight in kg from one scale line, or None when there is no number."""
    cleaned = raw.replace("\r", "").replace("\n", "").strip()
    match = WEIGHT_RE.search(cleaned)
    if not match:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


def random_test_weight() -> float:
    """Simulated reading for test mode: 0.5 to 2.0 kg, three decimals."""
    return round(random.random() * 1.5 + 0.5, 3)


class ScaleReader:
    """Background reader for a serial floor scale.

    Usage:
        reader = ScaleReader("/dev/ttyUSB0")
        reader.start()
        weight = reader.latest_weight
        reader.stop()
    """

    def __init__(self, port: str, baudrate: int = 9600, timeout: float = READ_TIMEOUT):
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self._latest: Optional[float] = None
        self._read_at: Optional[datetime] = None
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def latest_weight(self) -> Optional[float]:
        with self._lock:
            return self._latest

    @property
    def read_at(self) -> Optional[datetime]:
        with self._lock:
            return self._read_at

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def feed(self, raw: str) -> Optional[float]:
        """Record one raw line; returns the parsed weight if any."""
        weight = parse_scale_weight(raw)
        if weight is not None:
            with self._lock:
                self._latest = weight
                self._read_at = datetime.now(timezone.utc)
        return weight

    def _read_loop(self) -> None:
        logger.info(f"Opening scale on {self.port} @ {self.baudrate} bps")
        try:
            with serial.Serial(self.port, self.baudrate, timeout=self.timeout) as ser:
                while not self._stop.is_set():
                    raw = ser.readline().decode("ascii", "ignore")
                    if raw.strip():
                        self.feed(raw)
        except serial.SerialException as e:
            logger.error(f"Scale connection failed: {e}", extra_fields={"port": self.port})

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._read_loop, name="scale-reader", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
