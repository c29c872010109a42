"""Block-range event polling."""

from ibc_poller.polling.backoff import Backoff
from ibc_poller.polling.poller import EventPoller

__all__ = ["Backoff", "EventPoller"]
