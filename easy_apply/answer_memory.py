import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from rapidfuzz import fuzz

from easy_apply.models import AnswerRecord
from easy_apply.normalizer import QuestionNormalizer

logger = logging.getLogger(__name__)

# Saved questions shorter than this never match by substring ("name" would
# otherwise match every "... company name ..." question).
MIN_SUBSTRING_LENGTH = 6
FUZZY_THRESHOLD = 90

PersistCallback = Callable[[AnswerRecord], None]


class AnswerMemory:
    """
    Remembers answers per (category, normalized question) for the run.

    Lookup order: exact key, substring containment in either direction,
    then a fuzzy token match. ``remember`` overwrites (last write wins) and
    forwards the record to the persist callback.
    """

    def __init__(
        self,
        normalizer: Optional[QuestionNormalizer] = None,
        records: Iterable[AnswerRecord] = (),
        persist: Optional[PersistCallback] = None,
        fuzzy_threshold: int = FUZZY_THRESHOLD,
    ):
        self.normalizer = normalizer or QuestionNormalizer()
        self.persist = persist
        self.fuzzy_threshold = fuzzy_threshold
        self._answers: Dict[Tuple[str, str], str] = {}
        for record in records:
            self._answers[self._key(record.category, record.question)] = record.answer
        logger.info(f"[MEMORY] Loaded {len(self._answers)} saved answers")

    def __len__(self) -> int:
        return len(self._answers)

    def _key(self, category: str, question: str) -> Tuple[str, str]:
        return (str(category).lower(), self.normalizer.normalize_text(question))

    def lookup(self, category: str, question: str) -> Optional[str]:
        """
        Find a remembered answer for ``question`` within ``category``.

        Returns:
            The answer, or None when nothing matches.
        """
        key = self._key(category, question)
        if not key[1]:
            return None
        if key in self._answers:
            logger.debug(f"[MEMORY] Exact answer for '{question}'")
            return self._answers[key]

        same_category = [(q, a) for (c, q), a in self._answers.items() if c == key[0]]
        for saved_question, answer in same_category:
            shorter = min(saved_question, key[1], key=len)
            if len(shorter) < MIN_SUBSTRING_LENGTH:
                continue
            if saved_question in key[1] or key[1] in saved_question:
                logger.debug(f"[MEMORY] Substring answer for '{question}' (saved: '{saved_question}')")
                return answer

        match = self.normalizer.find_best_match(
            key[1],
            [q for q, _ in same_category],
            threshold=self.fuzzy_threshold,
            # whole-question similarity; a subset of words is not a match
            scorer=fuzz.token_sort_ratio,
        )
        if match is not None:
            logger.debug(f"[MEMORY] Fuzzy answer for '{question}' (saved: '{match}')")
            return self._answers[(key[0], match)]
        return None

    def remember(self, category: str, question: str, answer: str) -> None:
        """Store ``answer`` for the question, replacing any earlier value."""
        if answer is None or not str(answer).strip():
            return
        key = self._key(category, question)
        if not key[1]:
            return
        self._answers[key] = str(answer)
        if self.persist:
            try:
                self.persist(AnswerRecord(category=key[0], question=question.strip(), answer=str(answer)))
            except OSError as e:
                logger.error(f"[MEMORY] Failed to persist answer for '{question}': {e}")

    def records(self) -> List[AnswerRecord]:
        return [AnswerRecord(category=c, question=q, answer=a) for (c, q), a in self._answers.items()]
