from .models import ReviewRequest

NO_CONTEXT = "(no related code found in the indexed repository)"


def build_context_query(title: str, description: str | None) -> str:
    return f"{title}\n{description or ''}"


def render_context(snippets: list[str]) -> str:
    if not snippets:
        return NO_CONTEXT
    return "\n\n".join(snippets)


def build_review_prompt(req: ReviewRequest, context: list[str]) -> str:
    changed = ", ".join(req.changed_files) if req.changed_files else "(none)"
    description = req.pr_description.strip() if req.pr_description else "(no description)"
    return (
        f"## Pull Request\n"
        f"**Title:** {req.pr_title}\n"
        f"**Changed files:** {changed}\n\n"
        f"**Description:**\n{description}\n\n"
        f"## Related code\n"
        f"{render_context(context)}\n\n"
        f"## Diff\n"
        f"```diff\n{req.diff}\n```"
    )
