from typing import List

from fastapi import HTTPException, status

from app.schemas.pricing import ValidationIssue


def raise_for_issues(issues: List[ValidationIssue], message: str) -> None:
    """Blocks a save with field-level messages the admin form can show."""
    if issues:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": message,
                "errors": [issue.model_dump() for issue in issues],
            },
        )
