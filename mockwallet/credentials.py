"""
Mock Wallet Credential Store.

Maps a claim name to the ordered list of credential tokens ingested for it.
Records are owned by the store: readers always get copies.
"""

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from mockwallet.errors import MalformedRequestError
from mockwallet.signer import decode_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialRecord:
    """A credential token and its decoded claims."""

    token: str
    claims: Dict[str, Any] = field(default_factory=dict)

    @property
    def claim_name(self) -> str:
        """The storage index: the first key of the token's ``claim`` object."""
        return claim_name_of(self.claims)

    @classmethod
    def from_token(cls, token: str) -> "CredentialRecord":
        return cls(token=token, claims=decode_token(token))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CredentialRecord":
        """Accepts ``{token, claims}`` or the ``{jwt, json}`` fixture shape."""
        token = data.get("token", data.get("jwt"))
        claims = data.get("claims", data.get("json"))
        if claims is None:
            claims = decode_token(token)
        return cls(token=token, claims=copy.deepcopy(dict(claims)))

    def to_dict(self) -> Dict[str, Any]:
        return {"token": self.token, "claims": copy.deepcopy(self.claims)}


def claim_name_of(claims: Mapping[str, Any]) -> str:
    claim = claims.get("claim")
    if not isinstance(claim, Mapping) or not claim:
        raise MalformedRequestError("Credential has no claim object", stage="ingest")
    return next(iter(claim))


class CredentialStore:
    """
    Claim name -> ordered credential records.

    A claim name is present only while at least one record exists for it.

    Example:
        >>> store = CredentialStore()
        >>> store.add(CredentialRecord.from_token(token))
        'phone'
        >>> store.tokens_for(['phone', 'email'])
        ['eyJ0eXAiOiJKV1QiLCJhbGciOiJFUzI1NksifQ...']
    """

    def __init__(self, initial: Optional[Mapping[str, Iterable[Any]]] = None):
        self._records: Dict[str, List[CredentialRecord]] = {}
        self._lock = asyncio.Lock()

        for name, records in (initial or {}).items():
            for record in records:
                if not isinstance(record, CredentialRecord):
                    record = CredentialRecord.from_dict(record)
                self._append(name, record)

    def _append(self, name: str, record: CredentialRecord) -> None:
        self._records.setdefault(name, []).append(record)

    def add(self, record: CredentialRecord) -> str:
        """Append a record under its claim name. Returns the claim name."""
        name = record.claim_name
        self._append(name, record)
        logger.debug(f"Stored credential for claim '{name}'")
        return name

    async def add_all(self, records: Sequence[CredentialRecord]) -> List[str]:
        """Append several records in order as one write."""
        async with self._lock:
            names = [record.claim_name for record in records]
            for name, record in zip(names, records):
                self._append(name, record)
        return names

    def get(self, name: str) -> List[CredentialRecord]:
        """Records stored for a claim, oldest first."""
        return [copy.deepcopy(record) for record in self._records.get(name, [])]

    def tokens_for(self, names: Iterable[str]) -> List[str]:
        """
        Flattened tokens for the given claim names, in the order given.

        Names with no stored records are skipped.
        """
        tokens: List[str] = []
        seen = set()
        for name in names:
            if name in seen:
                continue
            seen.add(name)
            tokens.extend(record.token for record in self._records.get(name, []))
        return tokens

    def claim_names(self) -> List[str]:
        return list(self._records)

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __len__(self) -> int:
        return len(self._records)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {name: [r.to_dict() for r in records] for name, records in self._records.items()}
