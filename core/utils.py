import asyncio
import functools
import logging
import ssl
from typing import Optional

from googleapiclient.errors import HttpError

from proposals.errors import MutationFailure, ProposalErrorBuilder

logger = logging.getLogger(__name__)


class TransientNetworkError(Exception):
    """Custom exception for transient network errors after retries."""

    pass


def _target_id(kwargs) -> Optional[str]:
    return kwargs.get("document_id") or kwargs.get("spreadsheet_id")


def handle_http_errors(
    tool_name: str, is_read_only: bool = False, service_type: Optional[str] = None
):
    """
    A decorator to handle Google API HttpErrors and transient SSL errors in a standardized way.

    Writes that the API rejects raise MutationFailure carrying a structured
    error, so the caller can leave the proposal pending. Reads raise a
    generic Exception with a user-friendly message.

    If is_read_only is True, it will also catch ssl.SSLError and retry with
    exponential backoff. After exhausting retries, it raises a TransientNetworkError.

    Args:
        tool_name (str): The name of the operation being decorated (e.g., 'apply_doc_edit').
        is_read_only (bool): If True, the operation is considered safe to retry on
                             transient network errors. Defaults to False.
        service_type (str): Optional. The Google service type ('docs' or 'sheets').
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            max_retries = 3
            base_delay = 1

            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except ssl.SSLError as e:
                    if is_read_only and attempt < max_retries - 1:
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            f"SSL error in {tool_name} on attempt {attempt + 1}: {e}. Retrying in {delay} seconds..."
                        )
                        await asyncio.sleep(delay)
                    else:
                        logger.error(
                            f"SSL error in {tool_name} on final attempt: {e}. Raising exception."
                        )
                        raise TransientNetworkError(
                            f"A transient SSL error occurred in '{tool_name}' after {attempt + 1} attempts. "
                            "This is likely a temporary network or certificate issue. Please try again shortly."
                        ) from e
                except HttpError as error:
                    status = getattr(error.resp, "status", None)
                    if status in [401, 403]:
                        message = (
                            f"API error in {tool_name}: {error}. "
                            f"The stored Google credentials may be missing the {service_type or 'required'} scope "
                            f"or need to be refreshed."
                        )
                    elif status == 404:
                        message = f"API error in {tool_name}: the {service_type or 'requested'} file was not found ({error})"
                    else:
                        message = f"API error in {tool_name}: {error}"

                    logger.error(message, exc_info=True)
                    if is_read_only:
                        raise Exception(message) from error
                    raise MutationFailure(
                        ProposalErrorBuilder.mutation_failure(tool_name, message, target_id=_target_id(kwargs))
                    ) from error

        return wrapper

    return decorator
