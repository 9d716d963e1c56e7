"""Decision logging and querying for continuity."""

import logging
import uuid
from typing import Any, Dict, List, Optional

from continuity.core.validation import sanitize_list, sanitize_string, validate_enum
from continuity.logging_config import log_decision
from continuity.types import (
    DECISION_CATEGORIES,
    IMPACT_LEVELS,
    Decision,
    DecisionQuery,
    Impact,
    utc_now,
)
from continuity.utils import validate_workspace

logger = logging.getLogger(__name__)

# Words of a new decision used to look for a similar earlier one
DUPLICATE_KEYWORD_WORDS = 3


class DecisionsMixin:
    """Decision log operations for Continuity."""

    def log_decision(
        self,
        workspace: str,
        category: str,
        decision: str,
        rationale: str,
        alternatives: Optional[List[str]] = None,
        impact: Optional[str] = None,
        revisit_trigger: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Record a decision so later sessions do not re-debate it.

        The similarity check is advisory: when an earlier decision in the
        same workspace contains the first few words of this one, the result
        carries a ``warning`` naming it, and the new decision is recorded
        anyway.

        Raises:
            ValidationError: Bad input; nothing was recorded.
            StorageError: The log could not be read or appended to.
        """
        workspace = validate_workspace(workspace)
        record = Decision(
            id=str(uuid.uuid4()),
            timestamp=utc_now(),
            workspace=workspace,
            category=validate_enum(category, "category", DECISION_CATEGORIES),
            decision=sanitize_string(decision, "decision", 2000).strip(),
            rationale=sanitize_string(rationale, "rationale", 5000).strip(),
            alternatives=sanitize_list(alternatives, "alternatives", 1000, 50) or [],
            impact=validate_enum(impact, "impact", IMPACT_LEVELS, Impact.MEDIUM.value),
            revisit_trigger=sanitize_string(
                revisit_trigger, "revisit_trigger", 1000, required=False
            )
            or None,
            session_id=self._accumulator.current_session(workspace),
        )

        keyword = " ".join(record.decision.split(" ")[:DUPLICATE_KEYWORD_WORDS])
        existing = self._decision_log.query(DecisionQuery(workspace=workspace, keyword=keyword))

        warning = None
        if existing:
            similar = existing[0]
            warning = (
                f'Similar decision already exists ({similar.id}): "{similar.decision}" '
                f"logged on {similar.timestamp}. New decision recorded anyway; "
                "consider reviewing for conflicts."
            )

        self._decision_log.append(record)
        log_decision(
            workspace,
            record.id,
            record.category,
            duplicate=warning is not None,
            data_dir=self.config.data_dir,
        )
        logger.debug(f"Logged {record.category} decision {record.id[:8]}... in {workspace}")

        return {
            "success": True,
            "decision_id": record.id,
            "workspace": record.workspace,
            "category": record.category,
            "decision": record.decision,
            "warning": warning,
            "total_decisions": self._decision_log.count(),
        }

    def query_decisions(
        self,
        workspace: Optional[str] = None,
        category: Optional[str] = None,
        keyword: Optional[str] = None,
        since: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Search the decision log. Absent filters match everything."""
        query = DecisionQuery(
            workspace=validate_workspace(workspace) if workspace is not None else None,
            category=(
                validate_enum(category, "category", DECISION_CATEGORIES)
                if category is not None
                else None
            ),
            keyword=sanitize_string(keyword, "keyword", 500, required=False) or None,
            since=sanitize_string(since, "since", 100, required=False) or None,
        )
        results = self._decision_log.query(query)
        return {
            "total": len(results),
            "decisions": [d.to_dict() for d in results],
        }
