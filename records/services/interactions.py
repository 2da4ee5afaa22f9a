"""
Rule based checks over a patient's active medications.

This is not a drug interaction database.  Each rule looks at the whole
active set and returns warnings; the rule list comes from the
``MEDICATION_INTERACTION_RULES`` setting so real interaction lookups can be
plugged in next to the built-in rules.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from django.conf import settings
from django.utils.module_loading import import_string

from records.services.medications import MedicationRecord, active_medications

logger = logging.getLogger(__name__)

SEVERITY_LOW = 'low'
SEVERITY_MEDIUM = 'medium'
SEVERITY_HIGH = 'high'

DUPLICATE = 'DUPLICATE'
POLYPHARMACY = 'POLYPHARMACY'

INTERACTIONS_ERROR = 'حدث خطأ أثناء فحص تفاعلات الأدوية'


@dataclass
class InteractionWarning:
    type: str
    severity: str
    message: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {'type': self.type, 'severity': self.severity, 'message': self.message, **self.payload}


class InteractionRule:
    """Base class for a check over the active medication set.

    ``category`` decides where the results are reported: ``'interaction'``
    for drug-drug findings, ``'warning'`` for everything else.
    """
    category = 'warning'

    def evaluate(self, medications: Sequence[MedicationRecord]) -> list[InteractionWarning]:
        raise NotImplementedError


class DuplicateMedicationRule(InteractionRule):
    """The same medication (ignoring case) is active more than once."""

    def evaluate(self, medications):
        seen: set[str] = set()
        duplicates: list[str] = []
        for med in medications:
            name = med.medication_name.strip().lower()
            if name in seen and name not in duplicates:
                duplicates.append(name)
            seen.add(name)
        if not duplicates:
            return []
        return [InteractionWarning(
            type=DUPLICATE,
            severity=SEVERITY_MEDIUM,
            message='تم وصف نفس الدواء من قبل أكثر من طبيب',
            payload={'medications': duplicates},
        )]


class PolypharmacyRule(InteractionRule):
    """Too many medications at once."""

    def __init__(self, threshold: Optional[int] = None):
        self.threshold = threshold if threshold is not None else settings.POLYPHARMACY_THRESHOLD

    def evaluate(self, medications):
        count = len(medications)
        if count < self.threshold:
            return []
        return [InteractionWarning(
            type=POLYPHARMACY,
            severity=SEVERITY_LOW,
            message=f'تتناول {count} أدوية حالياً. يُنصح بمراجعة الطبيب لمراجعة الأدوية',
            payload={'count': count},
        )]


def default_rules() -> list[InteractionRule]:
    return [import_string(path)() for path in settings.MEDICATION_INTERACTION_RULES]


def run_rules(medications: Sequence[MedicationRecord], rules: Iterable[InteractionRule]):
    """Evaluate ``rules``; returns ``(interactions, warnings)``."""
    interactions: list[InteractionWarning] = []
    warnings: list[InteractionWarning] = []
    for rule in rules:
        found = rule.evaluate(medications)
        if rule.category == 'interaction':
            interactions.extend(found)
        else:
            warnings.extend(found)
    return interactions, warnings


def check_medication_interactions(patient_id, now: Optional[datetime] = None,
                                  rules: Optional[Iterable[InteractionRule]] = None) -> dict:
    try:
        medications = active_medications(patient_id, now=now)
        if not medications:
            return {'success': True, 'interactions': [], 'warnings': [], 'medicationCount': 0}
        interactions, warnings = run_rules(medications, rules if rules is not None else default_rules())
    except Exception:
        logger.exception("failed to check medication interactions for patient %s", patient_id)
        return {'success': False, 'message': INTERACTIONS_ERROR}

    if warnings or interactions:
        logger.info("patient %s: %d interaction(s), %d warning(s)", patient_id, len(interactions), len(warnings))
    return {
        'success': True,
        'interactions': [w.to_dict() for w in interactions],
        'warnings': [w.to_dict() for w in warnings],
        'medicationCount': len(medications),
    }
