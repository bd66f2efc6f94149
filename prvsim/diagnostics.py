"""
AI-assisted diagnostic for the PRV dashboard.

The operator can ask for a short technical commentary on the current
operating point. The request runs in the background and reports into a
single-slot cell that the UI polls; it never blocks the simulation tick.

Key responsibilities:
- Turning the current operating point into a natural-language prompt
- Running the request on a worker thread (fire-and-forget)
- Exposing idle / loading / success / failure to the UI
- Failing soft: any error becomes a fixed placeholder message

The language model is reached through the `openai` client. Anything with a
compatible `chat.completions.create` method can be injected for testing.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from openai import OpenAI

from .config import (
    OPENAI_API_KEY, DIAGNOSTIC_MODEL, DIAGNOSTIC_IDLE_MESSAGE,
    DIAGNOSTIC_UNAVAILABLE_MESSAGE, DIAGNOSTIC_EMPTY_MESSAGE
)
from .physics import ControlMode
from .schedule import is_daytime

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a water distribution engineer specialised in pressure management "
    "with pressure-reducing valves. Answer in English, technical but concise."
)


class DiagnosticStatus(str, Enum):
    IDLE = 'idle'
    LOADING = 'loading'
    SUCCESS = 'success'
    FAILURE = 'failure'


@dataclass(frozen=True)
class DiagnosticSnapshot:
    """The operating point sent to the assistant."""
    hour: int
    timestamp: str
    control_mode: ControlMode
    target: float
    inlet_pressure: float
    flow: float

    @classmethod
    def from_simulation(cls, point, config) -> 'DiagnosticSnapshot':
        return cls(
            hour=point.hour,
            timestamp=point.timestamp,
            control_mode=config.control_mode,
            target=config.target_value,
            inlet_pressure=point.inlet_pressure,
            flow=point.flow,
        )


def build_diagnostic_prompt(snapshot: DiagnosticSnapshot) -> str:
    """Format the operating point as the question for the assistant."""
    period = "day" if is_daytime(snapshot.hour) else "night"
    if ControlMode(snapshot.control_mode) == ControlMode.CRITICAL_POINT:
        mode = "critical point"
    else:
        mode = "fixed PRV outlet"

    return (
        f"Analyse this PRV installation. Time: {snapshot.timestamp} ({period}).\n"
        f"Control mode: {mode}.\n"
        f"Target: {snapshot.target:.1f} m. Inlet: {snapshot.inlet_pressure:.1f} m.\n"
        f"Flow: {snapshot.flow:.1f} L/s.\n"
        "Explain the difference between regulating at the critical point and "
        "regulating at the valve outlet for this operating point."
    )


class DiagnosticCell:
    """Thread-safe holder for the latest diagnostic status and text."""

    def __init__(self):
        self._lock = threading.Lock()
        self._status = DiagnosticStatus.IDLE
        self._text = DIAGNOSTIC_IDLE_MESSAGE

    def get(self) -> Tuple[DiagnosticStatus, str]:
        with self._lock:
            return self._status, self._text

    def set(self, status: DiagnosticStatus, text: str):
        with self._lock:
            self._status = status
            self._text = text

    @property
    def status(self) -> DiagnosticStatus:
        return self.get()[0]

    @property
    def text(self) -> str:
        return self.get()[1]


def _default_client():
    return OpenAI(api_key=OPENAI_API_KEY)


class DiagnosticService:
    """
    Runs diagnostic requests in the background.

    Only one request is in flight at a time; request() returns False while
    one is loading. cancel() drops the in-flight request: its result is
    discarded when it arrives and the cell goes back to idle.
    """

    def __init__(self, client_factory: Optional[Callable] = None, model: str = DIAGNOSTIC_MODEL,
                 executor: Optional[ThreadPoolExecutor] = None):
        self.cell = DiagnosticCell()
        self.model = model
        self._client_factory = client_factory or _default_client
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix='prv-diagnostic')
        self._lock = threading.Lock()
        self._generation = 0
        self._future: Optional[Future] = None

    def request(self, snapshot: DiagnosticSnapshot) -> bool:
        """Start a diagnostic for the snapshot. False if one is already running."""
        prompt = build_diagnostic_prompt(snapshot)
        with self._lock:
            if self.cell.status == DiagnosticStatus.LOADING:
                return False
            self._generation += 1
            generation = self._generation
            self.cell.set(DiagnosticStatus.LOADING, DIAGNOSTIC_IDLE_MESSAGE)
            self._future = self._executor.submit(self._run, prompt, generation)
        logger.info("Diagnostic requested for %s", snapshot.timestamp)
        return True

    def cancel(self):
        with self._lock:
            self._generation += 1
            if self._future is not None:
                self._future.cancel()
            self.cell.set(DiagnosticStatus.IDLE, DIAGNOSTIC_IDLE_MESSAGE)

    def wait(self, timeout: Optional[float] = None):
        """Block until the current request has finished (used by tests and shutdown)."""
        future = self._future
        if future is not None and not future.cancelled():
            future.result(timeout=timeout)

    def shutdown(self):
        self.cancel()
        self._executor.shutdown(wait=False)

    def _query(self, prompt: str) -> str:
        client = self._client_factory()
        response = client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        )
        return response.choices[0].message.content or ''

    def _run(self, prompt: str, generation: int):
        try:
            text = self._query(prompt).strip()
            status = DiagnosticStatus.SUCCESS
            if not text:
                text = DIAGNOSTIC_EMPTY_MESSAGE
        except Exception as e:
            logger.warning("Diagnostic request failed: %s", e)
            status = DiagnosticStatus.FAILURE
            text = DIAGNOSTIC_UNAVAILABLE_MESSAGE

        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding cancelled diagnostic result")
                return
            self.cell.set(status, text)
