"""
Resume-profile heuristics that answer common fields without calling the AI.

Matches by element attributes first (ids/names are stable across UI
languages), then by question wording, plus dedicated option matchers for
school and phone-prefix dropdowns.
"""
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator

from easy_apply.field_utils import raise_if_browser_closed
from easy_apply.normalizer import QuestionNormalizer
from llm.schemas import ResumeProfile

logger = logging.getLogger(__name__)

# Lower-cased institution fragment -> names the dropdown may use instead
SCHOOL_ALIASES: Dict[str, List[str]] = {
    "massachusetts institute of technology": ["MIT", "M.I.T."],
    "mit": ["Massachusetts Institute of Technology"],
    "universite psl": ["Paris Sciences et Lettres", "PSL University", "PSL Research University"],
    "psl": ["Paris Sciences et Lettres", "PSL University"],
    "institut polytechnique de paris": ["IP Paris", "Polytechnique Paris"],
    "telecom sudparis": ["Télécom SudParis", "Telecom SudParis"],
    "telecom paris": ["Télécom Paris", "ENST"],
    "ecole polytechnique": ["Polytechnique"],
    "hec paris": ["HEC", "HEC School of Management"],
    "sciences po": ["Sciences Po Paris", "Institut d'Études Politiques"],
    "ecole normale superieure": ["ENS Paris", "Normale Sup"],
    "centralesupelec": ["CentraleSupélec", "École Centrale"],
    "eth zurich": ["ETH Zürich", "Swiss Federal Institute of Technology"],
    "ucla": ["University of California, Los Angeles"],
}

SCHOOL_SKIP_WORDS = {"university", "universite", "institut", "institute", "ecole", "paris", "france", "college", "school"}
COMMON_PHONE_PREFIXES = ("+1", "+44", "+33", "+49", "+39", "+34")
URL_KEYWORDS = ("website", "url", "portfolio", "personal site", "github", "linkedin")


@dataclass
class FieldMatch:
    field_type: str
    value: str
    matched_by: str


class SmartFieldMatcher:
    """Answers profile-derivable fields (name, email, phone, city, links, school)."""

    def __init__(self, profile: Optional[ResumeProfile], normalizer: Optional[QuestionNormalizer] = None):
        self.profile = profile
        self.normalizer = normalizer or QuestionNormalizer()

    @property
    def personal(self):
        return self.profile.personal_information if self.profile else None

    async def match_by_element(self, control: Locator) -> Optional[FieldMatch]:
        """Detect the field from the control's id/name attributes."""
        info = self.personal
        if info is None:
            return None
        try:
            if await control.count() == 0:
                return None
            element_id = (await control.get_attribute("id") or "").lower()
            element_name = (await control.get_attribute("name") or "").lower()
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            logger.debug(f"[SMART MATCH] Attribute read failed: {e}")
            return None

        if "geo-location" in element_id or "location-geo" in element_id or "location" in element_name:
            if info.city:
                return FieldMatch("city", info.city, "element-id")

        if "phonenumber-nationalnumber" in element_id or "phone-national" in element_id:
            if info.phone_national:
                return FieldMatch("phone-national", info.phone_national, "element-id")
        elif "phone" in element_name or "phonenumber" in element_id:
            if info.full_phone:
                return FieldMatch("phone", info.full_phone, "element-id")

        if "email" in element_id or "email" in element_name:
            if info.email:
                return FieldMatch("email", info.email, "element-id")
        return None

    def match_by_question(self, question: str) -> Optional[FieldMatch]:
        """Detect the field from the question wording."""
        info = self.personal
        if info is None:
            return None
        q = self.normalizer.normalize_text(question)

        if any(keyword in q for keyword in URL_KEYWORDS):
            url = self._url_for_question(q)
            if url:
                return FieldMatch("url", url, "question-text")

        if "phone" in q and "prefix" not in q and "country code" not in q:
            if info.full_phone:
                return FieldMatch("phone", info.full_phone, "question-text")

        if re.search(r"\b(city|location)\b", q) and info.city:
            return FieldMatch("city", info.city, "question-text")

        if re.search(r"\be ?mail\b", q) and info.email:
            return FieldMatch("email", info.email, "question-text")

        if re.search(r"\bfirst name\b", q) and info.name:
            return FieldMatch("first-name", info.name, "question-text")
        if re.search(r"\b(last name|surname|family name)\b", q) and info.surname:
            return FieldMatch("last-name", info.surname, "question-text")
        if re.search(r"\bfull name\b", q) and info.full_name:
            return FieldMatch("full-name", info.full_name, "question-text")
        return None

    def _url_for_question(self, q: str) -> Optional[str]:
        info = self.personal
        if "github" in q and info.github:
            return info.github
        if "linkedin" in q and info.linkedin:
            return info.linkedin
        return info.website or info.github or info.linkedin

    def match_school(self, options: List[str]) -> Optional[str]:
        """
        Pick the dropdown option naming one of the resume's institutions.

        Tries, per institution: exact match, alias table, containment, then
        any significant word (> 4 chars, not a generic word like "university").
        """
        if not self.profile or not self.profile.education_details:
            return None
        norm = self.normalizer.normalize_text
        normalized_options = [(option, norm(option)) for option in options]

        for education in self.profile.education_details:
            institution = norm(education.university)
            if not institution:
                continue

            for option, option_norm in normalized_options:
                if option_norm == institution:
                    logger.info(f"[SMART MATCH] Exact school match: '{option}'")
                    return option

            for key, aliases in SCHOOL_ALIASES.items():
                if not re.search(rf"\b{re.escape(key)}\b", institution):
                    continue
                for alias in aliases:
                    alias_norm = norm(alias)
                    for option, option_norm in normalized_options:
                        if option_norm == alias_norm:
                            logger.info(f"[SMART MATCH] Alias school match: '{option}' (alias of '{education.university}')")
                            return option

            for option, option_norm in normalized_options:
                if option_norm and (institution in option_norm or option_norm in institution):
                    logger.info(f"[SMART MATCH] Partial school match: '{option}'")
                    return option

            words = [w for w in re.split(r"[\s\-()]+", institution) if len(w) > 4 and w not in SCHOOL_SKIP_WORDS]
            for word in words:
                for option, option_norm in normalized_options:
                    if re.search(rf"\b{re.escape(word)}\b", option_norm):
                        logger.info(f"[SMART MATCH] Word-based school match: '{option}' (word: '{word}')")
                        return option

        logger.warning("[SMART MATCH] No school match found")
        return None

    def match_phone_prefix(self, options: List[str]) -> Optional[str]:
        """Pick the calling-code option for the profile's phone prefix."""
        info = self.personal
        if info and info.phone_prefix:
            pattern = re.compile(rf"{re.escape(info.phone_prefix)}(?!\d)")
            for option in options:
                if pattern.search(option):
                    return option
        for prefix in COMMON_PHONE_PREFIXES:
            pattern = re.compile(rf"{re.escape(prefix)}(?!\d)")
            for option in options:
                if pattern.search(option):
                    logger.debug(f"[SMART MATCH] Using common prefix: '{option}'")
                    return option
        return None
