"""Walk an existing account through business onboarding from the terminal.

Answers are auto-saved to a draft file, so an interrupted run resumes where
it stopped.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path


def _bootstrap_import_path() -> None:
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


_bootstrap_import_path()

from revvio.database import SessionLocal  # noqa: E402
from revvio.models.user import User  # noqa: E402
from revvio.services.business_profile_service import upsert_business_profile  # noqa: E402
from revvio.services.onboarding_wizard import (  # noqa: E402
    STEP_FORMS,
    JsonFileDraftStore,
    OnboardingWizard,
    WizardStep,
)


PROMPTS = {
    "businessName": "Business name",
    "phone": "Phone",
    "email": "Business email",
    "googleReviewUrl": "Google review link",
    "facebookReviewUrl": "Facebook review link (optional)",
    "yelpReviewUrl": "Yelp review link (optional)",
}


def _ask(wizard: OnboardingWizard, name: str) -> None:
    current = wizard.values.get(name, "")
    suffix = f" [{current}]" if current else ""
    answer = input(f"{PROMPTS[name]}{suffix}: ").strip()
    wizard.update_field(name, answer or current)


def _step_fields(step: WizardStep) -> list[str]:
    model = STEP_FORMS[step]
    return [field.alias or name for name, field in model.model_fields.items()]


def run(wizard: OnboardingWizard) -> int:
    while not wizard.is_complete:
        print(f"\nStep {wizard.step_number} of 2 ({wizard.progress:.0f}% complete)")
        for name in _step_fields(wizard.step):
            _ask(wizard, name)

        if wizard.step is WizardStep.REVIEW_LINKS and not wizard.values.get("googleReviewUrl"):
            if input("Skip review links for now? [y/N]: ").strip().lower() == "y":
                wizard.skip_optional()
                break

        if not wizard.next():
            for field, message in wizard.field_errors.items():
                print(f"  {field}: {message}")
            if wizard.error:
                print(wizard.error)
                return 1

    print("\nYou're all set to start collecting reviews!")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create or update a business profile interactively.")
    parser.add_argument("--email", required=True, help="Email of the account that owns the business")
    parser.add_argument(
        "--draft",
        default=str(Path.home() / ".revvio" / "onboarding-draft.json"),
        help="Where unfinished answers are kept between runs",
    )
    args = parser.parse_args(argv)

    with SessionLocal() as db:
        user = (
            db.query(User)
            .filter(User.email == args.email.strip().lower())
            .filter(User.deleted_at.is_(None))
            .first()
        )
        if user is None:
            sys.stderr.write(f"no active account for {args.email}\n")
            return 2

        wizard = OnboardingWizard(
            lambda form: upsert_business_profile(db, user.id, form),
            JsonFileDraftStore(args.draft),
        )
        return run(wizard)


if __name__ == "__main__":
    raise SystemExit(main())
