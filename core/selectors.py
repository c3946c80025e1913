"""
Selector/locale catalog for the Easy Apply flow.

Every selector the engine uses lives here, keyed by semantic role and grouped by
UI locale. The ``any`` group is locale-neutral (data attributes, classes) and is
always tried first. When the site's markup drifts, edit this table and bump
CATALOG_VERSION; no engine code should need to change.
"""
from typing import Dict, Iterable, List, Optional

from core.utils import unique

CATALOG_VERSION = "2025.06.1"

DEFAULT_LOCALES = ("en", "fr", "es", "de")

CATALOG: Dict[str, Dict[str, List[str]]] = {
    # Job page
    "easy_apply_button": {
        "any": [
            '[data-view-name="job-apply-button"]',  # current top card, <a href> variant
            "button.jobs-apply-button",
            'button[data-control-name="jobdetails_topcard_inapply"]',
            ".jobs-s-apply button",
        ],
        "en": ['a[aria-label*="Easy Apply"]', 'button[aria-label*="Easy Apply"]'],
        "fr": ['a[aria-label*="Candidature simplifiée"]', 'button[aria-label*="Postuler"]'],
        "es": ['a[aria-label*="Candidatar"]', 'button[aria-label*="Solicitud sencilla"]'],
        "de": ['button[aria-label*="Bewerben"]', 'a[aria-label*="Einfach bewerben"]'],
    },
    "already_applied_indicator": {
        "any": [".jobs-details-top-card__apply-status--applied"],
        "en": [
            'span:has-text("Applied")',
            'span:has-text("Application sent")',
            '.artdeco-inline-feedback--success:has-text("Applied")',
        ],
        "fr": ['span:has-text("Candidature envoyée")'],
        "es": ['span:has-text("Candidatura enviada")'],
        "de": ['span:has-text("Bewerbung gesendet")'],
    },
    "show_more_description": {
        "any": ["button.inline-show-more-text__button", "button.jobs-description__footer-button"],
    },
    "job_description": {
        "any": [
            'span[data-testid="expandable-text-box"]',
            "#job-details",
            "article.jobs-description__container .jobs-box__html-content",
            "div.jobs-description-content__text--stretch",
            "div.jobs-description",
        ],
    },
    "job_closed_indicator": {
        "en": [':text("No longer accepting applications")', ':text("This job is no longer available")'],
        "fr": [':text("N’accepte plus de candidatures")'],
        "es": [':text("Ya no se aceptan solicitudes")'],
        "de": [':text("Nimmt keine Bewerbungen mehr an")'],
    },

    # Easy Apply modal
    "modal_container": {
        "any": ["div.jobs-easy-apply-modal", "[data-test-modal]"],
    },
    "form_section": {
        "any": [
            ".jobs-easy-apply-form-section__grouping",
            ".fb-dash-form-element",
            "[data-test-form-element]",
            ".jobs-document-upload",
            ".jobs-resume-picker",
            "[data-test-document-upload]",
        ],
    },
    "orphan_file_input": {
        "any": ["input[type='file']"],
    },
    "field_error": {
        "any": [
            "[data-test-form-element-error-message]",
            ".artdeco-inline-feedback--error",
            ".fb-form-element__error-text",
            '[role="alert"]',
        ],
    },
    "loading_spinner": {
        "any": [".artdeco-spinner", ".artdeco-loader"],
    },
    "primary_button": {
        "any": [
            "button[data-live-test-easy-apply-submit-button]",
            "button[data-live-test-easy-apply-review-button]",
            "button[data-live-test-easy-apply-next-button]",
            "button[data-easy-apply-next-button]",
            "footer button.artdeco-button--primary",
        ],
        "en": [
            'button[aria-label="Submit application"]',
            'button[aria-label="Review your application"]',
            'button[aria-label="Continue to next step"]',
        ],
        "fr": [
            'button[aria-label="Soumettre la candidature"]',
            'button[aria-label="Vérifier votre candidature"]',
            'button[aria-label="Passer à l’étape suivante"]',
        ],
        "es": [
            'button[aria-label="Enviar solicitud"]',
            'button[aria-label="Revisar tu solicitud"]',
            'button[aria-label="Continuar al siguiente paso"]',
        ],
        "de": [
            'button[aria-label="Bewerbung absenden"]',
            'button[aria-label="Bewerbung prüfen"]',
            'button[aria-label="Weiter zum nächsten Schritt"]',
        ],
    },
    "submit_button": {
        "any": ["button[data-live-test-easy-apply-submit-button]"],
        "en": ['button[aria-label*="Submit application"]', 'button:has-text("Submit")'],
        "fr": ['button[aria-label*="Soumettre la candidature"]', 'button:has-text("Soumettre")'],
        "es": ['button[aria-label*="Enviar solicitud"]', 'button:has-text("Enviar")'],
        "de": ['button[aria-label*="Bewerbung absenden"]', 'button:has-text("Absenden")'],
    },
    "review_button": {
        "any": ["button[data-live-test-easy-apply-review-button]"],
        "en": ['button[aria-label*="Review your application"]', 'button:has-text("Review")'],
        "fr": ['button[aria-label*="Vérifier votre candidature"]', 'button:has-text("Vérifier")'],
        "es": ['button[aria-label*="Revisar tu solicitud"]', 'button:has-text("Revisar")'],
        "de": ['button[aria-label*="Bewerbung prüfen"]', 'button:has-text("Prüfen")'],
    },
    "next_button": {
        "any": ["button[data-live-test-easy-apply-next-button]", "button[data-easy-apply-next-button]"],
        "en": ['button[aria-label*="Continue to next step"]', 'button:has-text("Next")'],
        "fr": ['button[aria-label*="Passer à l’étape suivante"]', 'button:has-text("Suivant")'],
        "es": ['button[aria-label*="Continuar al siguiente paso"]', 'button:has-text("Siguiente")'],
        "de": ['button[aria-label*="Weiter"]', 'button:has-text("Weiter")'],
    },
    "dismiss_button": {
        "any": ["button[data-test-modal-close-btn]", "button.artdeco-modal__dismiss"],
        "en": ['button[aria-label*="Dismiss"]'],
        "fr": ['button[aria-label*="Ignorer"]'],
        "es": ['button[aria-label*="Descartar"]'],
        "de": ['button[aria-label*="Verwerfen"]'],
    },
    "discard_confirm_button": {
        "any": ["button[data-test-dialog-secondary-btn]", "button[data-control-name='discard_application_confirm_btn']"],
        "en": ['button:has-text("Discard")'],
        "fr": ['button:has-text("Supprimer")'],
        "es": ['button:has-text("Descartar")'],
        "de": ['button:has-text("Verwerfen")'],
    },
    "save_dialog": {
        "any": ['[data-test-modal][role="alertdialog"]', "div.artdeco-modal--layer-confirmation"],
    },
    "save_dialog_primary": {
        "any": ["button[data-test-dialog-primary-btn]", "div.artdeco-modal--layer-confirmation button.artdeco-button--primary"],
    },
    "follow_company_checkbox": {
        "any": [
            'input[type="checkbox"][id*="follow-company-checkbox"]',
        ],
    },

    # Document upload
    "uploaded_document": {
        "any": [
            ".jobs-document-upload__filename",
            "[data-test-document-upload-success]",
            ".jobs-document-upload-redesign-card__file-name",
        ],
    },
    "previous_document_card": {
        "any": ["[data-test-document-upload-file-card]", "input[type='radio'][data-test-resume-radio]"],
    },
    "upload_button": {
        "any": ["label.jobs-document-upload__upload-button", "[data-test-document-upload-button]"],
        "en": ['button:has-text("Upload")'],
        "fr": ['button:has-text("Télécharger")'],
        "es": ['button:has-text("Cargar")'],
        "de": ['button:has-text("Hochladen")'],
    },

    # Form field parts
    "question_title": {
        "any": [
            "legend",
            "label",
            "[data-test-form-builder-radio-button-form-component__title]",
            "[data-test-checkbox-form-title]",
            "[data-test-text-entity-list-form-title]",
        ],
    },
    "typeahead_input": {
        "any": [
            "input[data-test-single-typeahead-input]",
            "input[role='combobox']",
            "input[autocomplete='off'][aria-autocomplete='list']",
        ],
    },
    "typeahead_option": {
        "any": ["[role='listbox'] [role='option']", ".basic-typeahead__selectable"],
    },

    # Search results
    "job_tile": {
        "any": [
            "li[data-occludable-job-id]",
            ".jobs-search-results__list-item",
            ".job-card-container",
            ".scaffold-layout__list-container li",
        ],
    },
    "job_tile_link": {"any": ["a.job-card-container__link", "a.job-card-list__title"]},
    "job_tile_company": {"any": [".artdeco-entity-lockup__subtitle span", ".job-card-container__primary-description"]},
    "job_tile_location": {"any": ["ul.job-card-container__metadata-wrapper li span", ".job-card-container__metadata-item"]},
    "job_tile_footer": {"any": ["ul.job-card-list__footer-wrapper li"]},
    "no_results": {
        "any": [".artdeco-empty-state__headline", ".jobs-search-no-results-banner"],
    },
}

# Text matched against the live DOM rather than selectors
SUCCESS_KEYWORD = "application"
SUCCESS_CONFIRMATIONS = ("submitted", "sent")
NO_RESULTS_TEXT = ("no matching jobs found", "no results found", "aucun résultat", "no se han encontrado", "keine treffer")
SAVE_DIALOG_TEXT = ("save this application", "enregistrer cette candidature", "guardar esta solicitud", "bewerbung speichern")
DISCARD_TEXT = ("discard", "supprimer", "descartar", "verwerfen")
FOOTER_HINT_IGNORE = ("ago", "viewed", "promoted")
NO_EASY_APPLY_HINTS = ("continue", "applied", "apply")
SUBMIT_TEXT = ("submit", "soumettre", "enviar", "absenden")
SUBMIT_ATTRIBUTE = "data-live-test-easy-apply-submit-button"


class SelectorCatalog:
    """Resolves semantic roles to ordered selector candidates."""

    def __init__(self, locales: Optional[Iterable[str]] = None, table: Optional[Dict[str, Dict[str, List[str]]]] = None):
        self.locales = tuple(locales) if locales else DEFAULT_LOCALES
        self.table = table if table is not None else CATALOG
        self.version = CATALOG_VERSION

    def get(self, role: str, locales: Optional[Iterable[str]] = None) -> List[str]:
        """
        Return the ordered selector candidates for ``role``.

        Locale-neutral selectors come first, followed by each requested locale
        in order. Duplicates are dropped.

        Raises:
            KeyError: if the role is not part of the catalog.
        """
        if role not in self.table:
            raise KeyError(f"Unknown selector role: {role}")
        groups = self.table[role]
        ordered = list(groups.get("any", []))
        for locale in locales or self.locales:
            ordered.extend(groups.get(locale, []))
        return unique(ordered)

    def css(self, role: str, locales: Optional[Iterable[str]] = None) -> str:
        """Comma-joined selector list, for a single locator that matches any candidate."""
        return ", ".join(self.get(role, locales))

    def roles(self) -> List[str]:
        return sorted(self.table)


catalog = SelectorCatalog()
