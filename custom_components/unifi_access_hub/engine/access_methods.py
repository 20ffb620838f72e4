"""Access method discovery from device extensions."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..const import ACCESS_METHODS, AccessMethodType
from ..models import AccessMethodDefinition, DeviceSnapshot, ExtensionRecord

_LOGGER = logging.getLogger(__name__)


def match_method_type(extension: ExtensionRecord) -> AccessMethodType | None:
    """Return the first access method whose keywords appear in an extension."""
    haystack = " ".join(value.lower() for value in extension.identity_fields if value)
    if not haystack:
        return None

    for method_type, meta in ACCESS_METHODS.items():
        if any(keyword in haystack for keyword in meta["keywords"]):
            return method_type

    return None


def extension_key(extension: ExtensionRecord, method_type: AccessMethodType) -> str:
    """Return the identity of an extension that survives re-discovery."""
    return (
        extension.unique_id
        or extension.device_id
        or extension.target_name
        or extension.extension_name
        or extension.source_id
        or str(method_type)
    )


def discover_access_methods(
    snapshot: DeviceSnapshot,
) -> dict[AccessMethodType, AccessMethodDefinition]:
    """Scan a device's extensions for boolean access method toggles.

    At most one definition exists per method type; the first extension
    discovered for a type wins.
    """
    definitions: dict[AccessMethodType, AccessMethodDefinition] = {}

    for extension in snapshot.extensions:
        method_type = match_method_type(extension)
        if method_type is None or method_type in definitions:
            continue

        target = next(
            (entry for entry in extension.target_config if isinstance(entry.value, bool)),
            None,
        )
        if target is None:
            continue

        definitions[method_type] = AccessMethodDefinition(
            method_type=method_type,
            config_key=target.key,
            extension_key=extension_key(extension, method_type),
            current_state=target.value,
        )

    return definitions


@dataclass
class AccessMethodChanges:
    """Result of reconciling discovered methods against exposed toggles."""

    added: list[AccessMethodDefinition] = field(default_factory=list)
    updated: list[AccessMethodDefinition] = field(default_factory=list)
    removed: list[AccessMethodDefinition] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.added or self.updated or self.removed)


class AccessMethodTracker:
    """Bookkeeping for the access method toggles a device exposes."""

    def __init__(self) -> None:
        self._definitions: dict[AccessMethodType, AccessMethodDefinition] = {}

    @property
    def definitions(self) -> dict[AccessMethodType, AccessMethodDefinition]:
        """Return the currently exposed definitions."""
        return dict(self._definitions)

    def get(self, method_type: AccessMethodType) -> AccessMethodDefinition | None:
        """Return the exposed definition for a method type."""
        return self._definitions.get(method_type)

    def reconcile(
        self, discovered: dict[AccessMethodType, AccessMethodDefinition]
    ) -> AccessMethodChanges:
        """Bring exposed toggles in line with a fresh discovery pass."""
        changes = AccessMethodChanges()

        for method_type, definition in discovered.items():
            known = self._definitions.get(method_type)

            # A toggle is identified by its extension; a different one starts fresh
            if known is not None and known.extension_key != definition.extension_key:
                known.current_state = False
                changes.removed.append(known)
                known = None

            if known is None:
                self._definitions[method_type] = definition
                changes.added.append(definition)
                continue

            known.config_key = definition.config_key

            if known.current_state != definition.current_state:
                known.current_state = definition.current_state
                changes.updated.append(known)

        # Dropped toggles are forced off and forgotten so a reappearance starts fresh
        for method_type in [t for t in self._definitions if t not in discovered]:
            definition = self._definitions.pop(method_type)
            definition.current_state = False
            changes.removed.append(definition)

        if changes:
            _LOGGER.debug(
                "Access methods reconciled: %d added, %d updated, %d removed",
                len(changes.added),
                len(changes.updated),
                len(changes.removed),
            )

        return changes
