import asyncio
from typing import Optional


class CancellationToken:
    """
    Cooperative stop signal for one search session.

    The token is passed explicitly into every long-running call and polled at
    pagination boundaries and between neighbor admissions. Cancelling never
    raises; loops simply stop issuing new requests and return what they have.
    """

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def is_cancelled(token: Optional[CancellationToken]) -> bool:
    return token is not None and token.cancelled
