"""
Verse translation upserts keyed by (verse, translation code).

Each batch is staged into a TranslationPlan of inserts and updates against
what the store already holds, then written with one bulk insert and one
bulk update.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict

logger = logging.getLogger(__name__)


@dataclass
class TranslationPlan:
    inserts: Dict[int, dict] = field(default_factory=dict)   # verse_id -> row
    updates: Dict[int, dict] = field(default_factory=dict)   # translation_id -> row
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0


class TranslationUpserter:
    """Decides insert / update / no-op for one (lang, translation_code, source) run.

    Text comparison is ordinal on the normalized text, which is what keeps a
    re-import of an unchanged file from writing anything.
    """

    def __init__(self, store, lang, translation_code, source=''):
        self.store = store
        self.lang = lang
        self.translation_code = translation_code
        self.source = source

    def stage(self, items):
        """``items`` is a list of (verse_id, row) in file order."""
        existing = self.store.translations_for(self.translation_code, {verse_id for verse_id, _ in items})
        plan = TranslationPlan()

        for verse_id, row in items:
            pending = plan.inserts.get(verse_id)
            if pending is not None:
                # Second row for a verse inserted earlier in this batch
                if pending['text'] == row.text:
                    plan.unchanged += 1
                else:
                    pending.update(self._values(row))
                    plan.updated += 1
                continue

            current = existing.get(verse_id)
            if current is None:
                plan.inserts[verse_id] = dict(
                    verse_id=verse_id,
                    translation_code=self.translation_code,
                    **self._values(row),
                )
                plan.inserted += 1
                continue

            translation_id, stored_text = current
            staged = plan.updates.get(translation_id)
            latest_text = staged['text'] if staged is not None else stored_text
            if latest_text == row.text:
                plan.unchanged += 1
            else:
                plan.updates[translation_id] = dict(id=translation_id, **self._values(row))
                plan.updated += 1

        return plan

    def apply(self, plan):
        self.store.insert_translations(list(plan.inserts.values()))
        self.store.update_translations(list(plan.updates.values()))
        logger.debug(f"{self.translation_code}: {plan.inserted} inserted, {plan.updated} updated, "
                     f"{plan.unchanged} unchanged")

    def _values(self, row):
        return {
            'lang': self.lang,
            'text': row.text,
            'source': self.source,
            'source_key': row.source_key,
            'verse_range': row.verse_range,
        }
