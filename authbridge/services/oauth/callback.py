"""Callback validation: provider error, required parameters, then state."""
import logging
from dataclasses import dataclass

from pydantic import ValidationError

from authbridge.core.exceptions import StateNotFoundError
from authbridge.models.schemas import CallbackParameters, OAuthStateData

from .exceptions import CallbackError, ProviderReportedError
from .state_store import StateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidatedCallback:
    code: str
    redirect_uri: str
    nonce: str | None = None
    code_verifier: str | None = None
    id_token: str | None = None
    access_token: str | None = None


class CallbackValidator:
    def __init__(self, state_store: StateStore):
        self.state_store = state_store

    def validate(self, params: CallbackParameters) -> ValidatedCallback:
        """
        Check a provider redirect, consuming its state entry.

        Checks short-circuit in order:
        1. ``error`` from the provider is passed through as-is
        2. missing ``code`` or ``state`` is ``invalid_request``
        3. an unknown/expired/reused state is ``invalid_state``

        Raises:
            CallbackError: with the error code to send back to the frontend
        """
        if params.error:
            logger.info("Provider returned error=%s", params.error)
            raise ProviderReportedError(params.error, params.error_description)

        if not params.code or not params.state:
            raise CallbackError("invalid_request", "Missing code or state parameter")

        try:
            raw = self.state_store.consume(params.state)
        except StateNotFoundError as exc:
            logger.warning("Invalid or expired OAuth state presented")
            raise CallbackError("invalid_state", "Invalid or expired state parameter") from exc

        try:
            state_data = OAuthStateData.loads(raw)
        except (ValidationError, ValueError) as exc:
            logger.error("Corrupted OAuth state entry")
            raise CallbackError("invalid_state", "Invalid or expired state parameter") from exc

        return ValidatedCallback(
            code=params.code,
            redirect_uri=state_data.redirect_uri,
            nonce=state_data.nonce,
            code_verifier=state_data.code_verifier,
            id_token=params.id_token,
            access_token=params.access_token,
        )
