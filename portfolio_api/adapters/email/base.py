from abc import ABC, abstractmethod
from email.message import EmailMessage


class AbstractEmailSender(ABC):
    """Interface for outbound email transports."""

    @property
    @abstractmethod
    def sender_address(self) -> str:
        """Address used in the From header of outgoing mail."""

    @abstractmethod
    async def send(self, message: EmailMessage) -> None:
        """Deliver one fully built message.

        Raises:
            RuntimeError: If the transport fails or times out.
        """
        ...
