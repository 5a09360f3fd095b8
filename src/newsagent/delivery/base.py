"""
Module to contain base class for Mailers
"""
from abc import ABC, abstractmethod


class Mailer(ABC):
    """
    Base interface for email delivery.
    """

    name: str

    @abstractmethod
    async def send(
        self,
        *,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        sender: str,
    ) -> None:
        """
        Deliver one email.
        Must raise exceptions on failure (handled upstream).
        """
        raise NotImplementedError
