"""Certificate storage.

``insert_if_absent`` is the only write. It returns False when a certificate
for the (user, course) pair already exists, leaving the stored one intact.
"""

import copy
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from eduforge.core.database.errors import storage_errors

from .models import Certificate


if TYPE_CHECKING:
    from cassandra.cluster import Session


class CertificateRepository(Protocol):
    """Storage interface for certificates."""

    async def insert_if_absent(self, certificate: Certificate) -> bool: ...

    async def get(self, user_id: UUID, course_id: UUID) -> Certificate | None: ...

    async def get_by_verification_code(self, code: str) -> Certificate | None: ...

    async def list_by_user(self, user_id: UUID) -> list[Certificate]: ...

    async def list_by_course(self, course_id: UUID) -> list[Certificate]: ...


# ==============================================================================
# Cassandra
# ==============================================================================


class CassandraCertificateRepository:
    """Certificate storage on Cassandra."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.certificates
            (user_id, course_id, certificate_id, enrollment_id, course_title,
             certificate_code, verification_code, grade, modules_completed,
             total_modules, percentage, enrolled_at, issued_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._insert_by_code = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.certificates_by_code
            (verification_code, user_id, course_id)
            VALUES (?, ?, ?)
        """)

        self._insert_by_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.certificates_by_course
            (course_id, user_id)
            VALUES (?, ?)
        """)

        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.certificates
            WHERE user_id = ? AND course_id = ?
        """)

        self._get_by_code = self.session.prepare(f"""
            SELECT user_id, course_id FROM {self.keyspace}.certificates_by_code
            WHERE verification_code = ?
        """)

        self._list_by_user = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.certificates WHERE user_id = ?
        """)

        self._list_by_course = self.session.prepare(f"""
            SELECT user_id FROM {self.keyspace}.certificates_by_course
            WHERE course_id = ?
        """)

    async def insert_if_absent(self, certificate: Certificate) -> bool:
        """Insert the certificate unless the pair already has one.

        Re-inserting the same certificate (same id) after a failed lookup write
        counts as applied and rewrites the lookup rows.
        """
        with storage_errors("certificate_insert"):
            result = await self.session.aexecute(
                self._insert,
                [
                    certificate.user_id,
                    certificate.course_id,
                    certificate.id,
                    certificate.enrollment_id,
                    certificate.course_title,
                    certificate.certificate_code,
                    certificate.verification_code,
                    certificate.grade,
                    certificate.modules_completed,
                    certificate.total_modules,
                    certificate.percentage,
                    certificate.enrolled_at,
                    certificate.issued_at,
                ],
            )
        if not result.was_applied:
            stored = await self.get(certificate.user_id, certificate.course_id)
            if stored is None or stored.id != certificate.id:
                return False

        with storage_errors("certificate_insert_lookups"):
            await self.session.aexecute(
                self._insert_by_code,
                [certificate.verification_code, certificate.user_id, certificate.course_id],
            )
            await self.session.aexecute(
                self._insert_by_course,
                [certificate.course_id, certificate.user_id],
            )
        return True

    async def get(self, user_id: UUID, course_id: UUID) -> Certificate | None:
        """Get certificate of a (user, course) pair."""
        with storage_errors("certificate_get"):
            result = await self.session.aexecute(self._get, [user_id, course_id])
        row = result.one()
        return Certificate.from_row(row) if row else None

    async def get_by_verification_code(self, code: str) -> Certificate | None:
        """Get certificate by its verification code."""
        with storage_errors("certificate_get_by_code"):
            result = await self.session.aexecute(self._get_by_code, [code])
        row = result.one()
        return await self.get(row.user_id, row.course_id) if row else None

    async def list_by_user(self, user_id: UUID) -> list[Certificate]:
        """Get all certificates of a user."""
        with storage_errors("certificate_list_by_user"):
            rows = await self.session.aexecute(self._list_by_user, [user_id])
        return [Certificate.from_row(row) for row in rows]

    async def list_by_course(self, course_id: UUID) -> list[Certificate]:
        """Get all certificates issued for a course."""
        with storage_errors("certificate_list_by_course"):
            rows = await self.session.aexecute(self._list_by_course, [course_id])
        certificates = []
        for row in rows:
            certificate = await self.get(row.user_id, course_id)
            if certificate is not None:
                certificates.append(certificate)
        return certificates


# ==============================================================================
# In-memory
# ==============================================================================


class InMemoryCertificateRepository:
    """Certificate storage in process memory."""

    def __init__(self) -> None:
        self._by_pair: dict[tuple[UUID, UUID], Certificate] = {}

    async def insert_if_absent(self, certificate: Certificate) -> bool:
        key = (certificate.user_id, certificate.course_id)
        if key in self._by_pair:
            return self._by_pair[key].id == certificate.id
        self._by_pair[key] = copy.deepcopy(certificate)
        return True

    async def get(self, user_id: UUID, course_id: UUID) -> Certificate | None:
        stored = self._by_pair.get((user_id, course_id))
        return copy.deepcopy(stored) if stored else None

    async def get_by_verification_code(self, code: str) -> Certificate | None:
        for certificate in self._by_pair.values():
            if certificate.verification_code == code:
                return copy.deepcopy(certificate)
        return None

    async def list_by_user(self, user_id: UUID) -> list[Certificate]:
        return [copy.deepcopy(c) for c in self._by_pair.values() if c.user_id == user_id]

    async def list_by_course(self, course_id: UUID) -> list[Certificate]:
        return [
            copy.deepcopy(c) for c in self._by_pair.values() if c.course_id == course_id
        ]
