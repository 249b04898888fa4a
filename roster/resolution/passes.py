"""Deduplication pass pipeline.

Seven passes run once per invocation, in this fixed order:

  0  junk removal             delete non-protected junk names
  1  exact normalized match   merge groups sharing a normalized name
  2  single-word evidence     merge "Dubin" into "Glenn Dubin" when the
                              evidence index singles out one candidate
  3  single-word cleanup      delete what pass 2 could not resolve
  4  key figure variants      curated table: merge variants, delete junk spellings
  5  middle-initial variants  "John Smith" ↔ "John Quincy Smith" (single match only)
  6  OCR/nickname variants    curated table: merge variants

In dry-run mode (``actions`` is a list) every proposed change is appended
as a pending ``DeduplicationAction``; otherwise the change is applied and
committed immediately, one action at a time.  Either way the roster
forgets the persons an action claims, so later passes never claim them
twice.

Pass 2 acceptance (constants preserved exactly, retuning changes which
entities merge):
  ONLY_MATCH    exactly one candidate scores above zero
  CLEAR_WINNER  top score ≥ 2 × runner-up
  otherwise     ambiguous, logged and never guessed
"""
from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy.orm import Session

from roster.plans.models import DeduplicationAction, PersonRef
from roster.resolution.canonical import pick_canonical
from roster.resolution.junk import junk_reason
from roster.resolution.mutations import chunked, commit_action, delete_persons_cascade, merge_person_group
from roster.resolution.snapshot import EvidenceIndex, PersonRecord, Roster
from roster.resolution.variants import VariantTable, VariantTables

logger = logging.getLogger(__name__)

MIN_SINGLE_WORD_LENGTH = 3
CLEAR_WINNER_RATIO = 2


def _ref(person: PersonRecord) -> PersonRef:
    return PersonRef(id=person.id, name=person.name)


def _quoted(people: list[PersonRecord]) -> str:
    return ", ".join(f'"{p.name}"' for p in people)


class PassPipeline:
    """Run passes 0–6 over a roster, proposing or applying each action."""

    def __init__(
        self,
        session: Session,
        roster: Roster,
        evidence: EvidenceIndex,
        protected_names: frozenset[str],
        tables: VariantTables,
        actions: list[DeduplicationAction] | None = None,
    ) -> None:
        self.db = session
        self.roster = roster
        self.evidence = evidence
        self.protected_names = protected_names
        self.tables = tables
        self.actions = actions
        self._next_id = len(actions) + 1 if actions else 1

    @property
    def dry_run(self) -> bool:
        return self.actions is not None

    def run(self) -> dict[int, int]:
        """Run every pass in order and return ``{pass: count}``."""
        return {
            0: self.pass0_junk_removal(),
            1: self.pass1_exact_normalized(),
            2: self.pass2_single_word_evidence(),
            3: self.pass3_delete_single_word(),
            4: self.pass4_key_figures(),
            5: self.pass5_middle_initial(),
            6: self.pass6_ocr_nickname(),
        }

    # ------------------------------------------------------------------
    # Action plumbing
    # ------------------------------------------------------------------

    def _is_protected(self, person: PersonRecord) -> bool:
        return person.normalized_name in self.protected_names

    def _propose(self, pass_no: int, type_: str, reason: str, **refs) -> None:
        self.actions.append(DeduplicationAction(
            id=self._next_id,
            pass_=pass_no,
            type=type_,
            reason=reason,
            **refs,
        ))
        self._next_id += 1

    def _merge(
        self,
        pass_no: int,
        reason: str,
        canonical: PersonRecord,
        duplicates: list[PersonRecord],
        names: list[str],
        evidence: str | None = None,
    ) -> bool:
        """Propose or apply one merge; ``False`` when applying it failed."""
        if self.dry_run:
            self._propose(
                pass_no,
                "merge",
                reason,
                canonical=_ref(canonical),
                duplicates=[_ref(d) for d in duplicates],
                evidence=evidence,
            )
        else:
            dup_ids = [d.id for d in duplicates]
            ok = commit_action(
                self.db,
                f'merge {_quoted(duplicates)} into "{canonical.name}"',
                lambda: merge_person_group(self.db, canonical.id, dup_ids, names),
            )
            if not ok:
                return False
        self.roster.absorb(canonical.id, [d.id for d in duplicates])
        return True

    def _delete(self, pass_no: int, reason: str, targets: list[PersonRecord], evidence: Callable[[PersonRecord], str | None] | None = None) -> int:
        """Propose one delete action per target, or cascade-delete them chunk by chunk."""
        if not targets:
            return 0

        if self.dry_run:
            for target in targets:
                self._propose(
                    pass_no,
                    "delete",
                    reason,
                    targets=[_ref(target)],
                    evidence=evidence(target) if evidence else None,
                )
            self.roster.discard(t.id for t in targets)
            return len(targets)

        deleted = 0
        for chunk in chunked([t.id for t in targets]):
            ok = commit_action(
                self.db,
                f"delete {len(chunk)} persons ({reason})",
                lambda chunk=chunk: delete_persons_cascade(self.db, chunk),
            )
            if ok:
                self.roster.discard(chunk)
                deleted += len(chunk)
        return deleted

    def _verb(self, proposed: str, applied: str) -> str:
        return proposed if self.dry_run else applied

    # ------------------------------------------------------------------
    # Pass 0: junk removal
    # ------------------------------------------------------------------

    def pass0_junk_removal(self) -> int:
        junk: list[PersonRecord] = []
        reasons: dict[int, str] = {}
        for person in self.roster.live():
            reason = junk_reason(person.name)
            if reason is None:
                continue
            if self._is_protected(person):
                logger.info('[P0] PROTECTED: skipping junk deletion of "%s"', person.name)
                continue
            junk.append(person)
            reasons[person.id] = reason

        count = self._delete(0, "junk name", junk, evidence=lambda p: reasons[p.id])
        logger.info("Pass 0: %s %d junk persons", self._verb("Found", "Removed"), count)
        return count

    # ------------------------------------------------------------------
    # Pass 1: exact normalized match
    # ------------------------------------------------------------------

    def pass1_exact_normalized(self) -> int:
        groups: dict[str, list[PersonRecord]] = {}
        for person in self.roster.live():
            norm = person.normalized_name
            if not norm:
                continue
            groups.setdefault(norm, []).append(person)

        merged = 0
        for group in groups.values():
            if len(group) <= 1:
                continue
            canonical = pick_canonical(group, self.protected_names)
            duplicates = [p for p in group if p.id != canonical.id]
            if self._merge(1, "exact normalized match", canonical, duplicates, [p.name for p in group]):
                merged += len(duplicates)
                logger.info(
                    '[P1] %s %s → "%s"', self._verb("Would merge", "Merged"), _quoted(group), canonical.name
                )

        logger.info("Pass 1: %s %d persons via exact normalized match", self._verb("Found", "Merged"), merged)
        return merged

    # ------------------------------------------------------------------
    # Pass 2: single word → dominant multi-word, evidence based
    # ------------------------------------------------------------------

    def pass2_single_word_evidence(self) -> int:
        live = self.roster.live()
        word_index: dict[str, dict[int, PersonRecord]] = {}
        singles: list[PersonRecord] = []
        for person in live:
            parts = person.parts
            if len(parts) >= 2:
                for part in parts:
                    word_index.setdefault(part, {})[person.id] = person
            elif len(parts) == 1:
                singles.append(person)

        merged = 0
        for single in singles:
            if self._is_protected(single):
                continue
            word = single.parts[0]
            if len(word) < MIN_SINGLE_WORD_LENGTH:
                continue

            candidates = list(word_index.get(word, {}).values())
            if not candidates:
                continue

            scored = sorted(
                (
                    (self.evidence.score(single.id, c.id), c)
                    for c in candidates
                    if c.id in self.roster
                ),
                key=lambda sc: (-sc[0], sc[1].id),
            )
            scored = [(score, c) for score, c in scored if score > 0]
            if not scored:
                continue

            top_score, winner = scored[0]
            if len(scored) > 1 and top_score < CLEAR_WINNER_RATIO * scored[1][0]:
                runner_score, runner = scored[1]
                logger.info(
                    '[P2] Skipping "%s" → ambiguous: "%s" (%d) vs "%s" (%d)',
                    single.name, winner.name, top_score, runner.name, runner_score,
                )
                continue

            shared_docs = self.evidence.shared_documents(single.id, winner.id)
            shared_conns = self.evidence.shared_connections(single.id, winner.id)
            evidence = f"score {top_score} ({shared_docs} shared docs, {shared_conns} shared conns)"
            if self._merge(2, "single-word evidence", winner, [single], [single.name], evidence=evidence):
                merged += 1
                logger.info(
                    '[P2] %s "%s" → "%s" (%s, score: %d)',
                    self._verb("Would merge", "Merged"),
                    single.name,
                    winner.name,
                    "ONLY_MATCH" if len(scored) == 1 else "CLEAR_WINNER",
                    top_score,
                )

        logger.info(
            "Pass 2: %s %d single-word persons via shared evidence", self._verb("Found", "Merged"), merged
        )
        return merged

    # ------------------------------------------------------------------
    # Pass 3: delete remaining single-word names
    # ------------------------------------------------------------------

    def pass3_delete_single_word(self) -> int:
        targets = [
            p for p in self.roster.live()
            if not self._is_protected(p) and p.normalized_name and len(p.parts) <= 1
        ]
        count = self._delete(3, "single-word name", targets)
        logger.info("Pass 3: %s %d remaining single-word names", self._verb("Found", "Deleted"), count)
        return count

    # ------------------------------------------------------------------
    # Passes 4 and 6: curated variant tables
    # ------------------------------------------------------------------

    def _apply_variant_table(self, pass_no: int, table: VariantTable, reason: str, tag: str) -> int:
        total = 0
        for entry in table.entries:
            canonical = self.roster.find_by_name(entry.canonical)
            if canonical is None:
                continue

            for variant in entry.variants:
                row = self.roster.find_by_name(variant)
                if row is None or row.id == canonical.id:
                    continue
                if self._merge(pass_no, reason, canonical, [row], [row.name]):
                    total += 1
                    logger.info(
                        '[%s] %s "%s" → "%s"', tag, self._verb("Would merge", "Merged"), row.name, canonical.name
                    )

            targets: list[PersonRecord] = []
            for name in entry.delete_names:
                row = self.roster.find_by_name(name)
                if row is not None and row.id != canonical.id and row not in targets:
                    targets.append(row)
            if targets:
                deleted = self._delete(pass_no, f"junk variant of {entry.canonical}", targets)
                total += deleted
                logger.info(
                    '[%s] %s %d junk variants of "%s"',
                    tag, self._verb("Would delete", "Deleted"), deleted, entry.canonical,
                )
        return total

    def pass4_key_figures(self) -> int:
        total = self._apply_variant_table(4, self.tables.key_figures, "key figure variant", "P4")
        logger.info(
            "Pass 4: %s %d key figure variants (table v%s)",
            self._verb("Found", "Processed"), total, self.tables.key_figures.version,
        )
        return total

    # ------------------------------------------------------------------
    # Pass 5: middle-initial variants
    # ------------------------------------------------------------------

    def pass5_middle_initial(self) -> int:
        two_word: list[PersonRecord] = []
        index: dict[tuple[str, str], list[PersonRecord]] = {}
        for person in self.roster.live():
            parts = person.parts
            if len(parts) == 2:
                two_word.append(person)
            elif len(parts) >= 3:
                index.setdefault((parts[0], parts[-1]), []).append(person)

        merged = 0
        for short in two_word:
            if short.id not in self.roster:
                continue
            parts = short.parts
            matches = [m for m in index.get((parts[0], parts[1]), []) if m.id in self.roster]
            if len(matches) != 1:
                if len(matches) > 1:
                    logger.info('[P5] Skipping "%s" → ambiguous: %s', short.name, _quoted(matches))
                continue

            match = matches[0]
            short_total = self.roster.reference_count(short.id)
            match_total = self.roster.reference_count(match.id)

            short_protected = self._is_protected(short)
            if short_protected != self._is_protected(match):
                canonical = short if short_protected else match
            elif short_total == match_total:
                canonical = short if short.id < match.id else match
            else:
                canonical = short if short_total > match_total else match
            duplicate = match if canonical is short else short

            evidence = f"2-word data: {short_total}, 3+-word data: {match_total}"
            if self._merge(5, "middle-initial variant", canonical, [duplicate], [duplicate.name], evidence=evidence):
                merged += 1
                logger.info(
                    '[P5] %s "%s" → "%s"', self._verb("Would merge", "Merged"), duplicate.name, canonical.name
                )

        logger.info("Pass 5: %s %d middle-initial variants", self._verb("Found", "Merged"), merged)
        return merged

    # ------------------------------------------------------------------
    # Pass 6: OCR misreads and nicknames
    # ------------------------------------------------------------------

    def pass6_ocr_nickname(self) -> int:
        total = self._apply_variant_table(6, self.tables.ocr_nicknames, "OCR/nickname variant", "P6")
        logger.info(
            "Pass 6: %s %d OCR/nickname variants (table v%s)",
            self._verb("Found", "Merged"), total, self.tables.ocr_nicknames.version,
        )
        return total
