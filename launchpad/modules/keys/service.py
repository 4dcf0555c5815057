from supabase import Client
from postgrest.exceptions import APIError
from launchpad.core.exceptions import CredentialStorageError, EncryptionError
from launchpad.modules.keys.encryption import encrypt, decrypt
from launchpad.modules.keys.schemas import KeyEntry, TenantKeyResponse
from launchpad.modules.validators.schemas import ValidationResult
from launchpad.modules.validators.service import get_validator
from typing import Callable, Dict, Iterable, List, Optional
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class KeyVault:
    """Encrypted per-tenant credential storage keyed by (tenant_id, key_type)."""

    def __init__(
        self,
        supabase: Client,
        encrypt_fn: Callable[[str], str] = encrypt,
        decrypt_fn: Callable[[str], str] = decrypt,
    ):
        self.supabase = supabase
        self._encrypt = encrypt_fn
        self._decrypt = decrypt_fn

    def store_keys(self, tenant_id: str, entries: Iterable[KeyEntry]) -> None:
        """
        Encrypt and upsert the whole batch in one statement.

        Either every entry is written or none is. A later entry for the same
        key_type in the batch replaces an earlier one.
        """
        by_type: Dict[str, KeyEntry] = {}
        for entry in entries:
            by_type[entry.key_type] = entry
        if not by_type:
            return

        now = _now()
        try:
            rows = [
                {
                    "tenant_id": tenant_id,
                    "key_type": key_type,
                    "encrypted_value": self._encrypt(entry.value),
                    "validated_at": now if entry.validated else None,
                    "updated_at": now,
                }
                for key_type, entry in by_type.items()
            ]
        except EncryptionError as e:
            raise CredentialStorageError(str(e)) from e

        try:
            self.supabase.table("tenant_keys")\
                .upsert(rows, on_conflict="tenant_id,key_type")\
                .execute()
        except APIError as e:
            raise CredentialStorageError(e.message or str(e)) from e

        logger.info(f"Stored {len(rows)} credential(s) for tenant {tenant_id}: {', '.join(by_type)}")

    def list_keys(self, tenant_id: str) -> List[TenantKeyResponse]:
        result = self.supabase.table("tenant_keys")\
            .select("tenant_id, key_type, validated_at, updated_at")\
            .eq("tenant_id", tenant_id)\
            .execute()
        return [TenantKeyResponse(**row) for row in (result.data or [])]

    def get_decrypted_keys(self, tenant_id: str, key_types: List[str]) -> Dict[str, str]:
        """Decrypted values for the requested kinds that exist."""
        result = self.supabase.table("tenant_keys")\
            .select("key_type, encrypted_value")\
            .eq("tenant_id", tenant_id)\
            .in_("key_type", key_types)\
            .execute()
        return {row["key_type"]: self._decrypt(row["encrypted_value"]) for row in (result.data or [])}

    def mark_validated(self, tenant_id: str, key_type: str) -> None:
        self.supabase.table("tenant_keys")\
            .update({"validated_at": _now()})\
            .eq("tenant_id", tenant_id)\
            .eq("key_type", key_type)\
            .execute()

    def revalidate(self, tenant_id: str, key_type: str) -> Optional[ValidationResult]:
        """
        Re-run the provider check for a stored key.

        Returns None when the tenant has no such key. validated_at is only
        touched when the check succeeds.
        """
        validator = get_validator(key_type)
        if validator is None:
            return ValidationResult(valid=False, message=f"No validator for key type: {key_type}")

        keys = self.get_decrypted_keys(tenant_id, [key_type])
        if key_type not in keys:
            return None

        result = validator(keys[key_type])
        if result.valid:
            self.mark_validated(tenant_id, key_type)
        return result
