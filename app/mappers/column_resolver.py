"""
app/mappers/column_resolver.py

Column resolution engine for spreadsheet-to-canonical mapping.

Resolution order per canonical field, first hit wins:

    1. explicit override (saved mapping config, then manual override)
    2. exact case-insensitive header match (field name or display name)
    3. case-insensitive substring match in either direction
    4. keyword table match (field keywords plus saved alias overrides)

Auto-resolution only proposes. Two canonical fields landing on one header is
reported as a conflict, never settled silently.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from app.domain.record_kinds import RecordKind
from app.normalizers.field_normalizers import cell_text
from app.validators.mapping_validator import MappingErrorDetail, MappingValidator


class MatchStrategy:
    OVERRIDE = "override"
    EXACT = "exact"
    SUBSTRING = "substring"
    KEYWORD = "keyword"


def normalize_header(header: str) -> str:
    """
    Normalize a column name for flexible matching.
    """

    return "".join(ch for ch in header.strip().lower() if ch.isalnum())


@dataclass(frozen=True)
class MappingResolution:
    """
    Proposed or confirmed mapping for one upload.
    """

    kind: str
    canonical_to_source: dict[str, str]
    source_headers: tuple[str, ...]
    match_strategies: dict[str, str]
    unmapped_required: tuple[str, ...] = ()
    errors: tuple[MappingErrorDetail, ...] = ()
    mapping_config_id: str | None = None

    @property
    def is_complete(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "mapping": dict(self.canonical_to_source),
            "source_headers": list(self.source_headers),
            "match_strategies": dict(self.match_strategies),
            "unmapped_required": list(self.unmapped_required),
            "errors": [error.to_dict() for error in self.errors],
            "mapping_config_id": self.mapping_config_id,
        }


class ColumnResolver:
    """
    Resolves raw spreadsheet headers into canonical field mappings.
    """

    def propose(
        self,
        kind: RecordKind,
        headers: Sequence[Any],
        *,
        manual_overrides: Mapping[str, str] | None = None,
        mapping_config: Any | None = None,
    ) -> MappingResolution:
        """
        Build a best-effort mapping; problems are reported, never raised.
        """

        source_headers = tuple(text for text in (cell_text(header) for header in headers) if text)
        if not source_headers:
            return MappingResolution(
                kind=kind.name,
                canonical_to_source={},
                source_headers=(),
                match_strategies={},
                unmapped_required=kind.required_fields,
                errors=(
                    MappingErrorDetail(
                        code="empty_headers",
                        message="No spreadsheet headers were provided.",
                    ),
                ),
            )

        header_lookup: dict[str, str] = {}
        for header in source_headers:
            header_lookup.setdefault(header.casefold(), header)
            compact = normalize_header(header)
            if compact:
                header_lookup.setdefault(compact, header)

        overrides = self._merge_overrides(
            mapping_config=mapping_config,
            manual_overrides=manual_overrides,
        )

        resolved: dict[str, str] = {}
        strategies: dict[str, str] = {}
        override_errors: list[MappingErrorDetail] = []

        for canonical_field, source_column in overrides.items():
            if canonical_field not in kind.field_classes:
                override_errors.append(
                    MappingErrorDetail(
                        code="invalid_override_field",
                        message="Manual override contains unknown canonical field.",
                        canonical_field=canonical_field,
                        source_column=source_column,
                    )
                )
                continue

            matched_source = header_lookup.get(source_column.casefold()) or header_lookup.get(
                normalize_header(source_column)
            )
            if matched_source is None:
                override_errors.append(
                    MappingErrorDetail(
                        code="override_source_not_found",
                        message="Manual override points to a column not present in the spreadsheet headers.",
                        canonical_field=canonical_field,
                        source_column=source_column,
                        context={"source_headers": list(source_headers)},
                    )
                )
                continue

            resolved[canonical_field] = matched_source
            strategies[canonical_field] = MatchStrategy.OVERRIDE

        for canonical_field in kind.canonical_fields:
            if canonical_field in resolved:
                continue
            match = self._auto_match(
                kind=kind,
                canonical_field=canonical_field,
                source_headers=source_headers,
                mapping_config=mapping_config,
            )
            if match is not None:
                resolved[canonical_field], strategies[canonical_field] = match

        ordered = {name: resolved[name] for name in kind.canonical_fields if name in resolved}
        errors = MappingValidator(kind).collect_errors(
            mapping=ordered,
            source_headers=source_headers,
            pre_errors=override_errors,
        )

        config_id = None
        if mapping_config is not None:
            raw_id = getattr(mapping_config, "id", None)
            config_id = str(raw_id) if raw_id is not None else None

        return MappingResolution(
            kind=kind.name,
            canonical_to_source=ordered,
            source_headers=source_headers,
            match_strategies={name: strategies[name] for name in ordered},
            unmapped_required=tuple(name for name in kind.required_fields if name not in ordered),
            errors=tuple(errors),
            mapping_config_id=config_id,
        )

    def resolve(
        self,
        kind: RecordKind,
        headers: Sequence[Any],
        *,
        manual_overrides: Mapping[str, str] | None = None,
        mapping_config: Any | None = None,
    ) -> MappingResolution:
        """
        Resolve a mapping that is safe for automatic ingestion.

        Raises MappingIncompleteError carrying the proposal otherwise.
        """

        proposal = self.propose(
            kind,
            headers,
            manual_overrides=manual_overrides,
            mapping_config=mapping_config,
        )
        if not proposal.is_complete:
            MappingValidator(kind).validate(
                mapping=proposal.canonical_to_source,
                source_headers=proposal.source_headers,
                pre_errors=[
                    error
                    for error in proposal.errors
                    if error.code in {"invalid_override_field", "override_source_not_found", "empty_headers"}
                ],
                proposal=proposal,
            )
        return proposal

    @staticmethod
    def map_row(
        *,
        raw_row: Mapping[str, Any],
        mapping: MappingResolution,
    ) -> dict[str, Any]:
        """
        Map one raw row (header -> cell) into canonical raw field values.
        """

        return {
            canonical_field: raw_row.get(source_column)
            for canonical_field, source_column in mapping.canonical_to_source.items()
        }

    def _auto_match(
        self,
        *,
        kind: RecordKind,
        canonical_field: str,
        source_headers: Sequence[str],
        mapping_config: Any | None,
    ) -> tuple[str, str] | None:
        field_lower = canonical_field.casefold()
        field_compact = normalize_header(canonical_field)
        exact_candidates = {field_lower, kind.label(canonical_field).casefold()}

        for header in source_headers:
            if header.casefold() in exact_candidates:
                return header, MatchStrategy.EXACT

        for header in source_headers:
            if self._contains_either_way(header.casefold(), field_lower) or self._contains_either_way(
                normalize_header(header), field_compact
            ):
                return header, MatchStrategy.SUBSTRING

        keywords = [*kind.keywords_for(canonical_field)]
        keywords.extend(self._config_aliases_for_field(mapping_config, canonical_field))
        for keyword in keywords:
            needle = keyword.casefold()
            if not needle:
                continue
            for header in source_headers:
                if needle in header.casefold():
                    return header, MatchStrategy.KEYWORD

        return None

    @staticmethod
    def _contains_either_way(left: str, right: str) -> bool:
        if not left or not right:
            return False
        return left in right or right in left

    @staticmethod
    def _merge_overrides(
        *,
        mapping_config: Any | None,
        manual_overrides: Mapping[str, str] | None,
    ) -> dict[str, str]:
        merged: dict[str, str] = {}

        if mapping_config is not None:
            config_mapping = getattr(mapping_config, "field_mapping_json", None)
            if isinstance(config_mapping, dict):
                for key, value in config_mapping.items():
                    if isinstance(key, str) and isinstance(value, str):
                        if key.strip() and value.strip():
                            merged[key.strip()] = value.strip()

        if manual_overrides:
            for key, value in manual_overrides.items():
                if isinstance(value, str) and key.strip() and value.strip():
                    merged[key.strip()] = value.strip()

        return merged

    @staticmethod
    def _config_aliases_for_field(mapping_config: Any | None, canonical_field: str) -> list[str]:
        if mapping_config is None:
            return []
        aliases_json = getattr(mapping_config, "alias_overrides_json", None)
        if not isinstance(aliases_json, dict):
            return []
        raw_aliases = aliases_json.get(canonical_field)
        if not isinstance(raw_aliases, list):
            return []
        return [alias for alias in raw_aliases if isinstance(alias, str) and alias.strip()]
