from typing import Callable

from google import genai

from creative_studio.services.credentials import CredentialSession

ClientFactory = Callable[[str], genai.Client]


def create_client(api_key: str) -> genai.Client:
    return genai.Client(api_key=api_key)


def client_for(session: CredentialSession, factory: ClientFactory = create_client) -> genai.Client:
    """Build a client with the key currently held by the session.

    A new client is created per call so a freshly selected key takes effect
    without restarting the server.
    """
    return factory(session.api_key())
