"""
scripts/materialize_template.py — CLI to copy a qualification template into a company.

Usage:
    python scripts/materialize_template.py --list
    python scripts/materialize_template.py --template-id <uuid> --company-id <id>
    python scripts/materialize_template.py --template-id <uuid> --company-id <id> --user-id user_123
"""

import sys
import os
import argparse
import logging
from typing import Optional

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.config import settings

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("materialize_template")

from app.db.session import get_session
from app.errors import RubricError
from app.services.materialization import materialize_template
from app.services.ordering import by_position
from app.services.rubric_service import TemplateRubricService


def list_templates() -> None:
    with get_session() as db:
        templates = TemplateRubricService(db).list()
        if not templates:
            print("No templates found.")
            return
        print(f"\n{'ID':<38} {'SEGMENT':<10} {'QUESTIONS':>9}  NAME")
        for template in templates:
            print(
                f"{template.id:<38} {template.segment_type.value:<10} "
                f"{len(template.questions):>9}  {template.nome}"
            )
            for question in by_position(template.questions):
                print(f"{'':<38}   {question.ordem:>2}. (x{question.peso}) {question.pergunta}")
        print()


def run(template_id: str, company_id: str, user_id: Optional[str]) -> int:
    print("\n" + "=" * 55)
    print("  Materializing qualification template")
    print("=" * 55)
    print(f"  Template : {template_id}")
    print(f"  Company  : {company_id}")

    try:
        with get_session() as db:
            rubric = materialize_template(db, template_id, company_id, user_id=user_id)
            new_id, nome, max_score = rubric.id, rubric.nome, rubric.pontuacao_maxima
    except RubricError as exc:
        logger.error("Materialization failed: %s", exc.message)
        return 1

    print(f"\n  ✅ Created qualificador {new_id} ({nome!r}, max score {max_score})")
    print("=" * 55 + "\n")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Copy a qualification template into a company.")
    parser.add_argument("--list", action="store_true", help="List templates and exit")
    parser.add_argument("--template-id", help="Template to copy")
    parser.add_argument("--company-id", help="Company that will own the copy")
    parser.add_argument("--user-id", default=None, help="Subject recorded as creator (optional)")
    args = parser.parse_args()

    if args.list:
        list_templates()
        return
    if not args.template_id or not args.company_id:
        parser.error("--template-id and --company-id are required unless --list is given")
    sys.exit(run(args.template_id, args.company_id, args.user_id))


if __name__ == "__main__":
    main()
