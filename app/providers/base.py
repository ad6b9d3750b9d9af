"""
Abstract transfer provider interface.

The orchestrator only talks to this interface. The Wise client wraps the real
HTTP API; the mock provider stands in for it locally and the test suite
substitutes its own fake.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class RequirementGroupEntry:
    """One input the provider may ask for, e.g. "transferPurpose"."""

    key: str
    name: str = ""
    type: str = "text"
    required: bool = False
    refresh_on_change: bool = False
    allowed_values: list[str] = field(default_factory=list)


@dataclass
class RequirementField:
    """A named requirement; its inputs live in ``group``."""

    name: str
    required: bool = False
    key: Optional[str] = None  # set on flat fields that carry no group
    group: list[RequirementGroupEntry] = field(default_factory=list)


@dataclass
class TransferRequirement:
    type: str
    fields: list[RequirementField] = field(default_factory=list)


@dataclass
class TransferResult:
    """Response from creating a transfer."""

    transfer_id: str
    status: str
    rate: float
    source_currency: str
    target_currency: str
    source_value: Optional[float] = None
    target_value: Optional[float] = None
    raw: Optional[dict[str, Any]] = None


def parse_requirements(payload: Any) -> list[TransferRequirement]:
    """Convert the provider's transfer-requirements JSON into dataclasses."""
    if isinstance(payload, dict):
        payload = [payload]
    requirements = []
    for item in payload or []:
        fields = []
        for f in item.get("fields") or []:
            group = [
                RequirementGroupEntry(
                    key=g.get("key", ""),
                    name=g.get("name", ""),
                    type=g.get("type", "text"),
                    required=bool(g.get("required", False)),
                    refresh_on_change=bool(g.get("refreshRequirementsOnChange", False)),
                    allowed_values=[
                        v["key"] for v in (g.get("valuesAllowed") or []) if "key" in v
                    ],
                )
                for g in f.get("group") or []
            ]
            fields.append(RequirementField(
                name=f.get("name", ""),
                required=bool(f.get("required", False)),
                key=f.get("key"),
                group=group,
            ))
        requirements.append(TransferRequirement(type=item.get("type", "transfer"), fields=fields))
    return requirements


class TransferProvider(ABC):
    """Abstract base class for transfer providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g. 'wise')."""
        ...

    @abstractmethod
    async def fetch_account_details(self) -> Any:
        """
        Fetch the provider account metadata for the configured profile.

        Raises:
            ProviderError: On non-2xx response, timeout or transport failure.
        """
        ...

    @abstractmethod
    async def get_transfer_requirements(
        self,
        target_account_id: str,
        quote_id: str,
        reference: str,
        transaction_id: str,
        details: Optional[dict[str, str]] = None,
    ) -> list[TransferRequirement]:
        """
        Ask which fields the provider needs before a transfer can be created.

        Raises:
            ProviderError: On non-2xx response (status code and body attached).
        """
        ...

    @abstractmethod
    async def create_transfer(
        self,
        amount: float,
        target_account_id: str,
        quote_id: str,
        transaction_id: Optional[str] = None,
        details: Optional[dict[str, str]] = None,
    ) -> TransferResult:
        """
        Create a transfer against a previously issued quote.

        transaction_id is the provider-side idempotency key; reusing it for
        the same payment makes a replayed create safe.

        Raises:
            ProviderError: On non-2xx response, timeout or transport failure.
        """
        ...

    async def aclose(self) -> None:
        """Release any held connections."""
        return None
