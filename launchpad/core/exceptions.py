"""
Typed failures raised by the provisioning collaborators.

The launch pipeline is the only place these are turned into job/step state;
HTTP routes translate them to HTTPException where they surface directly.
"""


class ProvisioningError(Exception):
    """The database provisioning service rejected or failed a request."""


class MigrationError(ProvisioningError):
    """A template migration failed; the tenant database is partially migrated."""

    def __init__(self, filename: str, message: str):
        self.filename = filename
        super().__init__(f"Migration {filename} failed: {message}")


class SeedError(ProvisioningError):
    """Initial configuration rows could not be written to the tenant database."""


class CredentialStorageError(Exception):
    """The credential batch could not be persisted. Nothing from the batch was stored."""


class EncryptionError(Exception):
    """Encryption secret missing/invalid, or a stored value could not be decrypted."""


class JobCancelled(Exception):
    """The job's cancellation token was set while a step was in flight."""


class DeadlineExceeded(Exception):
    """A step overran its time budget."""
