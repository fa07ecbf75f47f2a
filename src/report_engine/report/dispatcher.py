"""
Report delivery.

The pipeline calls Dispatcher.send once per run with every artifact locator
and treats any exception as a delivery failure.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from utils.tracing import trace_function

from ..models import utc_now

logger = logging.getLogger(__name__)


class Dispatcher(ABC):
    @abstractmethod
    def send(self, locators: list[str], recipients: list[str]) -> None:
        """
        Deliver artifacts to recipients

        Raises:
            DispatchError: If delivery fails
        """


@dataclass(frozen=True)
class Delivery:
    locators: tuple[str, ...]
    recipients: tuple[str, ...]
    sent_at: datetime


class LogDispatcher(Dispatcher):
    """
    Records deliveries in the log and an in-memory outbox

    Used for local runs where no mail transport is configured.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.outbox: list[Delivery] = []

    @trace_function("dispatch_artifacts", component="reports")
    def send(self, locators: list[str], recipients: list[str]) -> None:
        delivery = Delivery(tuple(locators), tuple(recipients), utc_now())
        with self._lock:
            self.outbox.append(delivery)
        logger.info(
            f"Delivered {len(locators)} artifact(s) to {', '.join(recipients)}"
        )
