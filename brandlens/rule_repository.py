"""Storage of brand rule sets and the reviewer operations on them.

A repository holds, per brand, the current rule list, the analysis status and
the assets extracted by the last analysis. Rules are immutable; every
mutation replaces rules by id.
"""

import json
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .models import (
    AnalysisStatus, BrandRule, ExtractedAssets, Provenance, RuleSummary
)

logger = logging.getLogger(__name__)

MANUAL_SOURCE = Provenance(file="manual", location="reviewer")


def new_rule_id() -> str:
    return f"rule-{uuid.uuid4().hex[:10]}"


class BrandRuleRepository(ABC):
    """Base class implementing reviewer operations over abstract storage."""

    def __init__(self):
        self._lock = threading.RLock()

    # Storage primitives

    @abstractmethod
    def _load_rules(self, brand_id: str) -> List[BrandRule]:
        ...

    @abstractmethod
    def _save_rules(self, brand_id: str, rules: List[BrandRule]) -> None:
        ...

    @abstractmethod
    def _load_status(self, brand_id: str) -> AnalysisStatus:
        ...

    @abstractmethod
    def _save_status(self, brand_id: str, status: AnalysisStatus) -> None:
        ...

    @abstractmethod
    def _load_assets(self, brand_id: str) -> Optional[ExtractedAssets]:
        ...

    @abstractmethod
    def _save_assets(self, brand_id: str, assets: Optional[ExtractedAssets]) -> None:
        ...

    # Queries

    def get_rules(self, brand_id: str) -> List[BrandRule]:
        with self._lock:
            return list(self._load_rules(brand_id))

    def get_rule(self, brand_id: str, rule_id: str) -> Optional[BrandRule]:
        for rule in self.get_rules(brand_id):
            if rule.id == rule_id:
                return rule
        return None

    def rules_for_asset_type(self, brand_id: str, asset_type: str) -> List[BrandRule]:
        return [r for r in self.get_rules(brand_id) if r.applies_to(asset_type)]

    def rules_by_category(self, brand_id: str, category: str) -> List[BrandRule]:
        return [r for r in self.get_rules(brand_id) if r.category == category]

    def get_status(self, brand_id: str) -> AnalysisStatus:
        with self._lock:
            return self._load_status(brand_id)

    def get_extracted_assets(self, brand_id: str) -> ExtractedAssets:
        with self._lock:
            return self._load_assets(brand_id) or ExtractedAssets()

    def has_rules(self, brand_id: str) -> bool:
        return len(self.get_rules(brand_id)) > 0

    def summary(self, brand_id: str) -> RuleSummary:
        rules = self.get_rules(brand_id)
        summary = RuleSummary(total=len(rules), confirmed=sum(1 for r in rules if r.confirmed))
        for rule in rules:
            summary.by_category[rule.category] = summary.by_category.get(rule.category, 0) + 1
        return summary

    # Mutations

    def set_rules(
        self,
        brand_id: str,
        rules: List[BrandRule],
        extracted_assets: Optional[ExtractedAssets] = None
    ) -> None:
        """Replace a brand's rules with a fresh analysis result and mark it for review."""
        with self._lock:
            self._save_rules(brand_id, list(rules))
            self._save_status(brand_id, AnalysisStatus.REVIEW)
            if extracted_assets is not None:
                self._save_assets(brand_id, extracted_assets)
        logger.info(f"Stored {len(rules)} rules for brand {brand_id}")

    def set_status(self, brand_id: str, status: AnalysisStatus) -> None:
        with self._lock:
            self._save_status(brand_id, AnalysisStatus(status))

    def update_rule(self, brand_id: str, rule_id: str, **updates: Any) -> Optional[BrandRule]:
        """
        Replace a rule with a revalidated copy carrying the given field updates.

        Returns:
            The updated rule, or None if no rule has that id
        """
        with self._lock:
            rules = self._load_rules(brand_id)
            updated = None
            new_rules = []
            for rule in rules:
                if rule.id == rule_id:
                    data = rule.model_dump()
                    data.update(updates)
                    data["id"] = rule_id
                    updated = BrandRule.model_validate(data)
                    new_rules.append(updated)
                else:
                    new_rules.append(rule)
            if updated is not None:
                self._save_rules(brand_id, new_rules)
            else:
                logger.debug(f"update_rule: no rule {rule_id} for brand {brand_id}")
            return updated

    def confirm_rule(self, brand_id: str, rule_id: str) -> Optional[BrandRule]:
        """Force a rule to confidence 1.0 and mark it confirmed. Idempotent."""
        return self.update_rule(brand_id, rule_id, confidence=1.0, confirmed=True)

    def confirm_all(self, brand_id: str) -> None:
        """Confirm every rule of a brand and complete its analysis."""
        with self._lock:
            rules = [
                rule.model_copy(update={"confidence": 1.0, "confirmed": True})
                for rule in self._load_rules(brand_id)
            ]
            self._save_rules(brand_id, rules)
            self._save_status(brand_id, AnalysisStatus.COMPLETE)

    def delete_rule(self, brand_id: str, rule_id: str) -> bool:
        """
        Remove exactly the rule with the given id.

        Returns:
            True if a rule was removed; deleting a missing id is a no-op
        """
        with self._lock:
            rules = self._load_rules(brand_id)
            remaining = [rule for rule in rules if rule.id != rule_id]
            if len(remaining) == len(rules):
                return False
            self._save_rules(brand_id, remaining)
            return True

    def add_rule(self, brand_id: str, rule: Union[BrandRule, Dict[str, Any]]) -> BrandRule:
        """
        Add a reviewer-authored rule. Manual rules are always confirmed at 1.0.

        Args:
            brand_id: Brand identifier
            rule: A BrandRule or a dict of its fields; ``id`` and ``sources`` are optional

        Returns:
            The stored rule
        """
        data = rule.model_dump() if isinstance(rule, BrandRule) else dict(rule)
        data.setdefault("sources", [MANUAL_SOURCE.model_dump()])
        if not data.get("id"):
            data["id"] = new_rule_id()
        data["confidence"] = 1.0
        data["confirmed"] = True
        new_rule = BrandRule.model_validate(data)

        with self._lock:
            rules = self._load_rules(brand_id)
            rules = [r for r in rules if r.id != new_rule.id] + [new_rule]
            self._save_rules(brand_id, rules)
        return new_rule

    def clear_rules(self, brand_id: str) -> None:
        with self._lock:
            self._save_rules(brand_id, [])
            self._save_status(brand_id, AnalysisStatus.NONE)
            self._save_assets(brand_id, None)

    def export_rules(self, brand_id: str) -> str:
        """Serialize a brand's rules as a JSON array."""
        rules = self.get_rules(brand_id)
        return json.dumps([rule.model_dump(mode="json") for rule in rules], indent=2, ensure_ascii=False)

    def import_rules(self, brand_id: str, payload: str) -> bool:
        """
        Replace a brand's rules from a JSON array and mark the analysis complete.

        Returns:
            False if the payload is not a JSON array of valid rules
        """
        try:
            data = json.loads(payload)
            if not isinstance(data, list):
                logger.error(f"Rule import for {brand_id} expected a JSON array, got {type(data).__name__}")
                return False
            rules = [BrandRule.model_validate(item) for item in data]
        except ValueError as e:
            logger.error(f"Failed to import rules for {brand_id}: {e}")
            return False

        with self._lock:
            self._save_rules(brand_id, rules)
            self._save_status(brand_id, AnalysisStatus.COMPLETE)
        return True


class InMemoryRuleRepository(BrandRuleRepository):
    """Rule repository held in process memory."""

    def __init__(self):
        super().__init__()
        self._rules: Dict[str, List[BrandRule]] = {}
        self._status: Dict[str, AnalysisStatus] = {}
        self._assets: Dict[str, Optional[ExtractedAssets]] = {}

    def _load_rules(self, brand_id: str) -> List[BrandRule]:
        return list(self._rules.get(brand_id, []))

    def _save_rules(self, brand_id: str, rules: List[BrandRule]) -> None:
        self._rules[brand_id] = list(rules)

    def _load_status(self, brand_id: str) -> AnalysisStatus:
        return self._status.get(brand_id, AnalysisStatus.NONE)

    def _save_status(self, brand_id: str, status: AnalysisStatus) -> None:
        self._status[brand_id] = status

    def _load_assets(self, brand_id: str) -> Optional[ExtractedAssets]:
        return self._assets.get(brand_id)

    def _save_assets(self, brand_id: str, assets: Optional[ExtractedAssets]) -> None:
        self._assets[brand_id] = assets


class JsonFileRuleRepository(BrandRuleRepository):
    """
    Rule repository persisted to a single JSON file.

    Asset metadata is stored, asset bytes are not.
    """

    def __init__(self, path: Union[str, Path]):
        """
        Initialize the repository.

        Args:
            path: JSON file to read from and write to; created on first write
        """
        super().__init__()
        self.path = Path(path)
        self._state = self._read()

    def _read(self) -> Dict[str, Dict[str, Any]]:
        empty = {"rules": {}, "analysis_status": {}, "extracted_assets": {}}
        if not self.path.exists():
            return empty
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                state = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read rule store {self.path}, starting empty: {e}")
            return empty
        for key, value in empty.items():
            state.setdefault(key, value)
        return state

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._state, f, indent=2, ensure_ascii=False)
        tmp_path.replace(self.path)

    def _load_rules(self, brand_id: str) -> List[BrandRule]:
        return [BrandRule.model_validate(item) for item in self._state["rules"].get(brand_id, [])]

    def _save_rules(self, brand_id: str, rules: List[BrandRule]) -> None:
        self._state["rules"][brand_id] = [rule.model_dump(mode="json") for rule in rules]
        self._write()

    def _load_status(self, brand_id: str) -> AnalysisStatus:
        return AnalysisStatus(self._state["analysis_status"].get(brand_id, AnalysisStatus.NONE.value))

    def _save_status(self, brand_id: str, status: AnalysisStatus) -> None:
        self._state["analysis_status"][brand_id] = AnalysisStatus(status).value
        self._write()

    def _load_assets(self, brand_id: str) -> Optional[ExtractedAssets]:
        data = self._state["extracted_assets"].get(brand_id)
        return ExtractedAssets.model_validate(data) if data else None

    def _save_assets(self, brand_id: str, assets: Optional[ExtractedAssets]) -> None:
        self._state["extracted_assets"][brand_id] = assets.model_dump(mode="json") if assets else None
        self._write()
