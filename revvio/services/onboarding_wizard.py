"""Three-step business onboarding: basic-info -> review-links -> success.

The wizard only collects and validates input. The profile itself is written by
whatever ``submitter`` is passed in (normally ``upsert_business_profile``).
Field values are auto-saved to a draft store after every change; the draft is
a convenience and never the record of truth.
"""
from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Protocol

from pydantic import BaseModel, ValidationError

from revvio.errors import ProfileStoreError
from revvio.schemas.business import BusinessInfoForm, OnboardingForm, ReviewLinksForm


logger = logging.getLogger(__name__)

GENERIC_ERROR = "An unexpected error occurred. Please try again."


class WizardStep(str, Enum):
    BASIC_INFO = "basic-info"
    REVIEW_LINKS = "review-links"
    SUCCESS = "success"


STEP_ORDER = (WizardStep.BASIC_INFO, WizardStep.REVIEW_LINKS, WizardStep.SUCCESS)
STEP_FORMS: dict[WizardStep, type[BaseModel]] = {
    WizardStep.BASIC_INFO: BusinessInfoForm,
    WizardStep.REVIEW_LINKS: ReviewLinksForm,
}


def _aliases(model: type[BaseModel]) -> list[str]:
    return [field.alias or name for name, field in model.model_fields.items()]


FIELD_NAMES = _aliases(OnboardingForm)


class DraftStore(Protocol):
    def load(self) -> dict[str, Any]: ...

    def save(self, draft: dict[str, Any]) -> None: ...

    def clear(self) -> None: ...


class InMemoryDraftStore:
    def __init__(self, draft: dict[str, Any] | None = None) -> None:
        self.draft: dict[str, Any] = dict(draft or {})

    def load(self) -> dict[str, Any]:
        return dict(self.draft)

    def save(self, draft: dict[str, Any]) -> None:
        self.draft = dict(draft)

    def clear(self) -> None:
        self.draft = {}


class JsonFileDraftStore:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("ignoring unreadable onboarding draft at %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, draft: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(draft, indent=2), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


def _field_errors(exc: ValidationError) -> dict[str, str]:
    errors: dict[str, str] = {}
    for err in exc.errors(include_url=False):
        loc = err.get("loc") or ("",)
        errors.setdefault(str(loc[0]), err.get("msg", "Invalid value"))
    return errors


class OnboardingWizard:
    def __init__(self, submitter: Callable[[OnboardingForm], Any], store: DraftStore | None = None) -> None:
        self.submitter = submitter
        self.store: DraftStore = store or InMemoryDraftStore()
        self.field_errors: dict[str, str] = {}
        self.error: str | None = None

        draft = self.store.load()
        values = draft.get("values") or {}
        self.values: dict[str, str] = {k: str(v) for k, v in values.items() if k in FIELD_NAMES}
        try:
            step = WizardStep(draft.get("step", WizardStep.BASIC_INFO.value))
        except ValueError:
            step = WizardStep.BASIC_INFO
        # A finished wizard starts over.
        self.step = WizardStep.BASIC_INFO if step is WizardStep.SUCCESS else step

    @property
    def step_number(self) -> int:
        return STEP_ORDER.index(self.step) + 1

    @property
    def progress(self) -> float:
        return self.step_number / len(STEP_ORDER) * 100

    @property
    def is_complete(self) -> bool:
        return self.step is WizardStep.SUCCESS

    def _autosave(self) -> None:
        self.store.save({"step": self.step.value, "values": dict(self.values)})

    def _payload(self, model: type[BaseModel]) -> dict[str, str]:
        return {alias: self.values.get(alias, "") for alias in _aliases(model)}

    def update_field(self, name: str, value: str) -> None:
        if name not in FIELD_NAMES:
            raise KeyError(f"unknown onboarding field: {name}")
        self.values[name] = value
        self.field_errors.pop(name, None)
        self._autosave()

    def validate_step(self) -> bool:
        form_cls = STEP_FORMS.get(self.step)
        if form_cls is None:
            return True
        try:
            form_cls.model_validate(self._payload(form_cls))
        except ValidationError as exc:
            self.field_errors = _field_errors(exc)
            return False
        self.field_errors = {}
        return True

    def next(self) -> bool:
        """Advance past the current step if its fields are valid.

        Leaving review-links submits the whole form.
        """
        if self.step is WizardStep.SUCCESS or not self.validate_step():
            return False
        if self.step is WizardStep.REVIEW_LINKS:
            return self.submit()
        self.step = STEP_ORDER[STEP_ORDER.index(self.step) + 1]
        self._autosave()
        return True

    def back(self) -> bool:
        if self.step is not WizardStep.REVIEW_LINKS:
            return False
        self.step = WizardStep.BASIC_INFO
        self.error = None
        self._autosave()
        return True

    def skip_optional(self) -> bool:
        # Review links may be filled in later from settings.
        if self.step is not WizardStep.REVIEW_LINKS:
            return False
        self.step = WizardStep.SUCCESS
        self.field_errors = {}
        self.store.clear()
        return True

    def submit(self) -> bool:
        self.error = None
        try:
            form = OnboardingForm.model_validate(self._payload(OnboardingForm))
        except ValidationError as exc:
            self.field_errors = _field_errors(exc)
            return False
        try:
            self.submitter(form)
        except ProfileStoreError as exc:
            # Store rejections carry a message meant for the user.
            logger.warning("onboarding submission rejected: %s", exc)
            self.error = str(exc)
            return False
        except Exception:
            logger.exception("onboarding submission failed")
            self.error = GENERIC_ERROR
            return False
        self.field_errors = {}
        self.step = WizardStep.SUCCESS
        self.store.clear()
        return True
