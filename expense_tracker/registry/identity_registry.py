"""
Identity Registry

Maps each participant identity to a Person and remembers the order in
which identities were first registered.

State per identity: unregistered -> registered. Names can change any
number of times afterwards; there is no deregistration.
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from expense_tracker.audit import AuditLogger
from expense_tracker.errors import AlreadyRegisteredError, NotRegisteredError
from expense_tracker.models.ledger import Identity, Person, PersonProfile, utc_now
from expense_tracker.services.storage import (
    InMemoryPersonStorage,
    PersonStorageInterface,
)
from expense_tracker.validation import LedgerValidator


class IdentityRegistry:
    """
    Registry of participants.

    Writes (register, update_name) run under the shared write lock;
    lookups never lock and never mutate.
    """

    def __init__(
        self,
        storage: Optional[PersonStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
        write_lock: Optional[asyncio.Lock] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._storage = storage or InMemoryPersonStorage()
        self._audit_logger = audit_logger
        self._validator = validator or LedgerValidator()
        self._write_lock = write_lock or asyncio.Lock()
        self._clock = clock

    async def register(
        self,
        identity: Identity,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> Person:
        """
        Register an identity under a display name.

        Raises:
            InvalidInputError: Empty name or null identity
            AlreadyRegisteredError: Identity is already registered
        """
        self._validator.raise_for_errors(
            self._validator.validate_registration(identity, name)
        )

        async with self._write_lock:
            if await self._storage.get_person(identity) is not None:
                raise AlreadyRegisteredError(f"Identity already registered: {identity}")

            now = self._clock()
            person = Person(
                identity=identity,
                name=name.strip(),
                registered_at=now,
                updated_at=now,
            )
            await self._storage.add_person(person)

            if self._audit_logger:
                await self._audit_logger.log_person_registered(person, correlation_id)

        return person

    async def update_name(
        self,
        identity: Identity,
        new_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> Person:
        """
        Replace the display name of a registered identity.

        Raises:
            InvalidInputError: Empty name
            NotRegisteredError: Identity is not registered
        """
        self._validator.raise_for_errors(
            self._validator.validate_name_update(new_name)
        )

        async with self._write_lock:
            person = await self._storage.get_person(identity)
            if person is None:
                raise NotRegisteredError(f"Identity not registered: {identity}")

            previous_name = person.name
            updated = person.model_copy(update={
                "name": new_name.strip(),
                "updated_at": self._clock(),
            })
            await self._storage.update_person(updated)

            if self._audit_logger:
                await self._audit_logger.log_person_updated(
                    updated, previous_name, correlation_id
                )

        return updated

    async def is_registered(self, identity: Identity) -> bool:
        return await self._storage.get_person(identity) is not None

    async def get_person(self, identity: Identity) -> Optional[Person]:
        return await self._storage.get_person(identity)

    async def get_name(self, identity: Identity) -> str:
        """
        Name of a registered identity.

        Raises:
            NotRegisteredError: Identity is not registered
        """
        person = await self._storage.get_person(identity)
        if person is None:
            raise NotRegisteredError(f"Identity not registered: {identity}")
        return person.name

    async def get_profile(self, identity: Identity) -> PersonProfile:
        """(name, identity) of a person; the zero profile if not registered."""
        person = await self._storage.get_person(identity)
        if person is None:
            return PersonProfile.empty(self._validator.null_identity)
        return person.profile()

    async def count(self) -> int:
        return await self._storage.count_people()

    async def list_all(self) -> list[Identity]:
        """Registered identities in registration order."""
        return await self._storage.list_identities()
