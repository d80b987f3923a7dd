"""
Contact Repository

The seeker's existing contacts (the connector pool). The scout only ever reads
from it; ``upsert_contacts`` exists for imports and the command line.
"""

import logging
import re
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Union

from pymongo import ASCENDING, UpdateOne

from src.services.scout.models import Contact

from .base import AtlasRepositoryBase

logger = logging.getLogger(__name__)

ContactInput = Union[Contact, Dict[str, Any]]


def build_contact_id(contact: Dict[str, Any]) -> str:
    """
    Stable id for a contact without one.

    Examples:
        >>> build_contact_id({"name": "Pat Lee", "linkedin_url": "https://www.linkedin.com/in/pat"})
        'linkedin:https://www.linkedin.com/in/pat'
        >>> build_contact_id({"name": "Pat Lee", "current_company": "Acme Corp"})
        'contact:pat-lee:acme-corp'
    """
    linkedin = (contact.get("linkedin_url") or "").strip().lower()
    if linkedin:
        return f"linkedin:{linkedin}"

    name = re.sub(r"\s+", "-", (contact.get("name") or "").strip().lower())
    company = re.sub(r"\s+", "-", (contact.get("current_company") or "unknown").strip().lower())
    return f"contact:{name}:{company}"


def _to_contact(contact: ContactInput, existing_id: Optional[str] = None) -> Contact:
    data = contact.model_dump() if isinstance(contact, Contact) else dict(contact)
    data["id"] = data.get("id") or existing_id or build_contact_id(data)
    return Contact.model_validate(data)


class ContactRepositoryInterface(ABC):
    """
    Abstract interface for the contacts store.

    Implementations:
    - InMemoryContactRepository: process-local (tests, CLI)
    - AtlasContactRepository: MongoDB ``contacts`` collection
    """

    @abstractmethod
    def find_by_company(self, company: str) -> List[Contact]:
        """
        Contacts whose current company contains ``company`` (case-insensitive).

        Returns:
            Matching contacts ordered by name
        """
        pass

    @abstractmethod
    def list_contacts(self, limit: int = 1000) -> List[Contact]:
        """First ``limit`` contacts ordered by name."""
        pass

    @abstractmethod
    def upsert_contacts(self, contacts: Iterable[ContactInput]) -> int:
        """
        Insert or update contacts.

        Contacts without an id are matched to an existing record by LinkedIn
        URL, then by name + company; otherwise a stable id is derived.

        Returns:
            Number of contacts written
        """
        pass


class InMemoryContactRepository(ContactRepositoryInterface):
    """Dictionary-backed contacts store."""

    def __init__(self, contacts: Optional[Iterable[ContactInput]] = None):
        self._lock = threading.Lock()
        self._contacts: Dict[str, Contact] = {}
        if contacts:
            self.upsert_contacts(contacts)

    def _sorted(self) -> List[Contact]:
        return sorted(self._contacts.values(), key=lambda contact: contact.name)

    def find_by_company(self, company: str) -> List[Contact]:
        needle = company.lower()
        with self._lock:
            return [
                contact
                for contact in self._sorted()
                if needle in (contact.current_company or "").lower()
            ]

    def list_contacts(self, limit: int = 1000) -> List[Contact]:
        with self._lock:
            return self._sorted()[:max(1, int(limit))]

    def _find_existing_id(self, data: Dict[str, Any]) -> Optional[str]:
        linkedin = (data.get("linkedin_url") or "").strip()
        if linkedin:
            for contact in self._contacts.values():
                if contact.linkedin_url == linkedin:
                    return contact.id

        name = (data.get("name") or "").lower()
        company = (data.get("current_company") or "").strip().lower()
        for contact in self._contacts.values():
            if contact.name.lower() == name and (contact.current_company or "").lower() == company:
                return contact.id
        return None

    def upsert_contacts(self, contacts: Iterable[ContactInput]) -> int:
        written = 0
        with self._lock:
            for item in contacts:
                data = item.model_dump() if isinstance(item, Contact) else dict(item)
                contact = _to_contact(data, None if data.get("id") else self._find_existing_id(data))
                self._contacts[contact.id] = contact
                written += 1
        return written


class AtlasContactRepository(AtlasRepositoryBase, ContactRepositoryInterface):
    """MongoDB implementation of the contacts store."""

    def __init__(
        self,
        mongodb_uri: Optional[str] = None,
        database: str = "warmpath",
        collection: str = "contacts",
    ):
        super().__init__(mongodb_uri, database)
        self._collection_name = collection

    def _collection(self):
        return self._get_collection(self._collection_name)

    @staticmethod
    def _from_document(document: Dict[str, Any]) -> Contact:
        data = {key: value for key, value in document.items() if key != "_id"}
        data["id"] = document["_id"]
        return Contact.model_validate(data)

    def find_by_company(self, company: str) -> List[Contact]:
        cursor = self._collection().find(
            {"current_company": {"$regex": re.escape(company), "$options": "i"}}
        ).sort("name", ASCENDING)
        return [self._from_document(document) for document in cursor]

    def list_contacts(self, limit: int = 1000) -> List[Contact]:
        cursor = self._collection().find({}).sort("name", ASCENDING).limit(max(1, int(limit)))
        return [self._from_document(document) for document in cursor]

    def _find_existing_id(self, data: Dict[str, Any]) -> Optional[str]:
        linkedin = (data.get("linkedin_url") or "").strip()
        if linkedin:
            document = self._collection().find_one({"linkedin_url": linkedin}, {"_id": 1})
            if document:
                return document["_id"]

        document = self._collection().find_one(
            {
                "name": {"$regex": f"^{re.escape(data.get('name') or '')}$", "$options": "i"},
                "current_company": {
                    "$regex": f"^{re.escape((data.get('current_company') or '').strip())}$",
                    "$options": "i",
                },
            },
            {"_id": 1},
        )
        return document["_id"] if document else None

    def upsert_contacts(self, contacts: Iterable[ContactInput]) -> int:
        operations = []
        for item in contacts:
            data = item.model_dump() if isinstance(item, Contact) else dict(item)
            contact = _to_contact(data, None if data.get("id") else self._find_existing_id(data))
            fields = contact.model_dump(exclude={"id"})
            operations.append(UpdateOne({"_id": contact.id}, {"$set": fields}, upsert=True))

        if not operations:
            return 0

        try:
            self._collection().bulk_write(operations, ordered=False)
        except Exception as e:
            logger.error(f"Error upserting contacts: {e}")
            raise
        return len(operations)
