from __future__ import annotations

from helpers.bookmark_input import SubmissionValidationError, normalize_url
from models.bookmark import DuplicateCheckResult
from services.credentials import CredentialProvider, require_credential
from services.pinboard_client import PinboardClient


async def check_duplicate_for_url(
    client: PinboardClient,
    credentials: CredentialProvider,
    raw_url: str,
) -> DuplicateCheckResult:
    credential = require_credential(credentials)
    normalized = normalize_url(raw_url)
    if not normalized:
        raise SubmissionValidationError("Invalid URL")
    existing = await client.existing_record_for_url(credential, normalized)
    return DuplicateCheckResult(exists=existing is not None, bookmark=existing)


__all__ = ["check_duplicate_for_url"]
