"""
Transfer requirement checks.

Before creating a transfer we ask the provider which fields it needs and
compare them with the details we are about to send. The provider answers
with a list of requirement sets; each field holds a group of inputs, and
some inputs only accept a fixed list of values:

  [{"type": "transfer",
    "fields": [{"name": "Transfer purpose",
                "group": [{"key": "transferPurpose", "required": true,
                           "valuesAllowed": [{"key": "PERSONAL_EXPENSES"}]}]}]}]

An input is unmet when it is required and we send no value for it, or when
we send a value outside its allowed list. Unmet inputs are reported together
so the orchestrator can raise a single ValidationError.
"""

from dataclasses import dataclass, field

from app.providers.base import TransferRequirement


@dataclass
class RequirementsCheck:
    """Result of checking transfer details against provider requirements."""

    missing: list[str] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)

    @property
    def satisfied(self) -> bool:
        return not self.missing and not self.invalid

    @property
    def unmet(self) -> list[str]:
        return self.missing + self.invalid


def check_requirements(
    requirements: list[TransferRequirement],
    details: dict[str, str],
) -> RequirementsCheck:
    """
    Check transfer details against the provider's requirement sets.

    Args:
        requirements: Parsed transfer-requirements response.
        details: The "details" object we will send with the transfer.

    Returns:
        RequirementsCheck listing unmet input keys, deduplicated, in the
        order the provider listed them.
    """
    result = RequirementsCheck()

    for requirement in requirements:
        for f in requirement.fields:
            # Flat field without a group of inputs
            if not f.group:
                key = f.key or f.name
                if f.required and not details.get(key) and key not in result.missing:
                    result.missing.append(key)
                continue

            for entry in f.group:
                value = details.get(entry.key)
                if not value:
                    if entry.required and entry.key not in result.missing:
                        result.missing.append(entry.key)
                    continue
                if entry.allowed_values and value not in entry.allowed_values:
                    label = f"{entry.key}={value}"
                    if label not in result.invalid:
                        result.invalid.append(label)

    return result
