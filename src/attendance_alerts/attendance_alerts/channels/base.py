from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ..core.enums import Channel


class ChannelProvider(ABC):
    """One transport (email, SMS).

    Providers are stateless towards the dispatcher: ``send`` either returns
    the provider's message reference or raises ProviderUnavailable,
    TransientSendFailure or PermanentSendFailure. Retry policy lives in the
    dispatcher, not here.
    """

    channel: Channel

    @abstractmethod
    def available(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def send(self, to: str, content: str, *, subject: Optional[str] = None) -> str:
        raise NotImplementedError
