"""
Text normalization and fuzzy option matching for form questions and answers.
"""

import re
import unicodedata
from typing import Dict, List, Optional

from rapidfuzz import fuzz, process


class QuestionNormalizer:
    """
    Normalizes question text so answers can be remembered and matched across
    postings whose wording differs in case, accents, spacing or punctuation.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Args:
            config_path: Optional YAML file with a ``synonyms`` mapping
                         (canonical value -> list of synonyms). Built-in
                         defaults are used when absent or unreadable.
        """
        self.synonyms: Dict[str, List[str]] = {}
        self._load_config(config_path)

    def _load_config(self, config_path: Optional[str]):
        try:
            if not config_path:
                raise FileNotFoundError()

            import yaml
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            self.synonyms = data.get("synonyms", {}) or {}
        except (OSError, ValueError, ImportError):
            self._load_defaults()
        else:
            if not self.synonyms:
                self._load_defaults()

    def _load_defaults(self):
        self.synonyms = {
            "YES": ["yes", "y", "oui", "si", "sí", "ja", "true", "i confirm", "authorized"],
            "NO": ["no", "n", "non", "nein", "false", "not authorized"],
        }

    @staticmethod
    def strip_diacritics(text: str) -> str:
        decomposed = unicodedata.normalize("NFKD", text)
        return "".join(ch for ch in decomposed if not unicodedata.combining(ch))

    def normalize_text(self, text: str) -> str:
        """
        Clean and normalize text for comparison.

        Steps:
        1. Case-fold and strip diacritics
        2. Remove HTML tags
        3. Replace punctuation with spaces
        4. Collapse whitespace
        5. Collapse duplicated halves ("Email Email" -> "email")

        Args:
            text: Raw text to normalize

        Returns:
            Normalized text string
        """
        if not text:
            return ""
        if not isinstance(text, str):
            text = str(text)

        normalized = self.strip_diacritics(text.casefold())
        normalized = re.sub(r"<[^>]+>", "", normalized)
        normalized = re.sub(r"[^\w\s]", " ", normalized)
        normalized = re.sub(r"\s+", " ", normalized).strip()
        return self._deduplicate_repeated_text(normalized)

    def _deduplicate_repeated_text(self, text: str) -> str:
        """
        Collapse strings composed of repeated halves into a single occurrence.
        """
        current = text
        while current:
            tokens = current.split()
            if len(tokens) % 2 != 0 or not tokens:
                break
            midpoint = len(tokens) // 2
            if tokens[:midpoint] != tokens[midpoint:]:
                break
            current = " ".join(tokens[:midpoint])
        return current

    def normalize_string(self, text: str) -> str:
        """Trim and collapse whitespace, keeping case and punctuation."""
        if not isinstance(text, str):
            return ""
        return re.sub(r"\s+", " ", text.strip())

    def dedupe_visible_text(self, text: str) -> str:
        """
        Collapse a label rendered twice (visible + screen-reader copy) while
        keeping the original casing.
        """
        cleaned = self.normalize_string(text)
        tokens = cleaned.split()
        if tokens and len(tokens) % 2 == 0:
            midpoint = len(tokens) // 2
            if [t.lower() for t in tokens[:midpoint]] == [t.lower() for t in tokens[midpoint:]]:
                return " ".join(tokens[:midpoint])
        return cleaned

    def map_to_canonical(self, value: str) -> str:
        """
        Map a value to its canonical form using the synonym dictionary.

        Returns:
            Canonical form (e.g. "YES") or the normalized value if unmapped
        """
        normalized = self.normalize_text(value)
        for canonical, syns in self.synonyms.items():
            if normalized == self.normalize_text(canonical):
                return canonical
            for syn in syns:
                if normalized == self.normalize_text(syn):
                    return canonical
        return normalized

    def same(self, a: str, b: str) -> bool:
        return bool(a) and bool(b) and self.normalize_text(a) == self.normalize_text(b)

    def find_exact(self, target: str, choices: List[str]) -> Optional[str]:
        """First choice equal to ``target`` after normalization (or synonym mapping)."""
        target_norm = self.normalize_text(target)
        if not target_norm:
            return None
        for choice in choices:
            if self.normalize_text(choice) == target_norm:
                return choice
        target_canonical = self.map_to_canonical(target)
        if target_canonical in self.synonyms:
            for choice in choices:
                if self.map_to_canonical(choice) == target_canonical:
                    return choice
        return None

    def find_containing(self, target: str, choices: List[str]) -> Optional[str]:
        """First choice that contains ``target`` as whole words, or is contained in it."""
        target_norm = self.normalize_text(target)
        if not target_norm:
            return None
        padded_target = f" {target_norm} "
        for choice in choices:
            choice_norm = self.normalize_text(choice)
            if not choice_norm:
                continue
            padded_choice = f" {choice_norm} "
            if padded_target in padded_choice or padded_choice in padded_target:
                return choice
        return None

    def find_best_match(
        self,
        target: str,
        choices: List[str],
        threshold: int = 85,
        scorer=fuzz.token_set_ratio,
    ) -> Optional[str]:
        """
        Find the best matching option using fuzzy matching.

        Args:
            target: Target value to match
            choices: List of available choices
            threshold: Minimum similarity score (0-100) to consider a match
            scorer: rapidfuzz scorer; the default tolerates extra words

        Returns:
            Best matching choice, or None if no match above threshold
        """
        if not choices or not target:
            return None

        result = process.extractOne(
            target,
            choices,
            scorer=scorer,
            processor=self.normalize_text,
            score_cutoff=threshold,
        )
        if result:
            return result[0]
        return None

    def match_option(self, target: str, choices: List[str], threshold: int = 85) -> Optional[str]:
        """Exact, then containment, then fuzzy match of ``target`` among ``choices``."""
        return (
            self.find_exact(target, choices)
            or self.find_containing(target, choices)
            or self.find_best_match(target, choices, threshold)
        )
