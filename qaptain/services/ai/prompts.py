"""Prompt templates for the scenario oracle.

The step formats listed here are the ones the step interpreter parses.
"""

from typing import List, Optional

from qaptain.models.page_context import PageContext

STEP_FORMATS = """\
- Navigate to <full URL>            (only for absolute URLs)
- Click the "<button, link or tab text>"
- Fill "<value>" into the "<input name, label or placeholder>"
- Fill the "<input>" field          (let the runner generate a realistic value)
- Select the "<option>" option in the "<select name or label>"
- Check the "<label>" checkbox
- Reload the page
- Wait for <n> seconds | Wait for the page to load
- Verify that the page contains "<text>"
- Verify that the page does not contain "<text>"
- Verify that the page title contains "<text>"
- Verify that the URL contains "<text>\""""


def describe_page(context: Optional[PageContext]) -> str:
    """Compact, model-readable description of a page context."""
    if context is None:
        return "No page context available."

    lines = [
        f"Title: {context.title or '(none)'}",
        f"URL: {context.url}",
        f"Login form: {'yes' if context.has_login_form else 'no'}; "
        f"contact form: {'yes' if context.has_contact_form else 'no'}; "
        f"search form: {'yes' if context.has_search_form else 'no'}",
    ]

    if context.forms:
        lines.append("Forms:")
        for index, form in enumerate(context.forms, start=1):
            label = form.id or form.class_name or f"form {index}"
            fields = ", ".join(
                f"{field.name or field.placeholder or '(unnamed)'} [{field.type}]"
                + (f" placeholder=\"{field.placeholder}\"" if field.placeholder else "")
                for field in form.inputs
            ) or "no fields"
            lines.append(f"  {index}. {label}: {fields}")
    else:
        lines.append("Forms: none")

    links = [link.text or link.href for link in context.nav_links if link.text or link.href]
    lines.append(f"Navigation links: {', '.join(links[:30]) if links else 'none'}")
    return "\n".join(lines)


def generate_scenarios_prompt(context: PageContext) -> str:
    return (
        "You are a world-class Senior QA Automation Engineer. Analyze the web page "
        "described below and generate a prioritized list of test scenarios as a JSON object.\n\n"
        f"Page:\n{describe_page(context)}\n\n"
        "Instructions:\n"
        '1. Return a single JSON object with one key, "scenarios": an array of 3 to 7 scenario objects.\n'
        "2. Cover the happy path first (a successful submission), then input validation "
        "(empty required fields, badly formatted email or phone), then key element interactions.\n"
        '3. Each scenario has a short "title", a "description", and "steps": an array of strings, '
        "one executable command each.\n"
        "4. Every step MUST use one of these formats:\n"
        f"{STEP_FORMATS}\n"
        "5. Never write abstract steps like \"Check keyboard navigation\". Use realistic fake data "
        '(e.g. "John Doe", "test@example.com"); for invalid data use clearly invalid values.\n'
        '6. Validation scenarios should usually end with a "Verify that the page contains" step.\n'
    )


def interpret_scenario_prompt(user_story: str, context: Optional[PageContext]) -> str:
    return (
        "You are an expert test automation engineer. Convert the user's story into a precise, "
        "step-by-step test script formatted as a JSON object.\n\n"
        f'User story: "{user_story}"\n\n'
        f"Page:\n{describe_page(context)}\n\n"
        "Instructions:\n"
        '1. Return a single JSON object with one key, "steps": an array of strings.\n'
        "2. One action per step; never produce incomplete commands such as \"Click the\".\n"
        "3. Every step MUST use one of these formats:\n"
        f"{STEP_FORMATS}\n"
        "4. Use the data given in the story (Email: value, username: value, ...). "
        "If only partial credentials are given, fill only those; do not invent missing ones.\n"
        "5. If the story asks to submit something with unspecified details, fill every relevant "
        "form field with realistic fake data, then click the submit control.\n"
        "6. Only use Navigate for absolute URLs present in the story.\n"
    )


def golden_titles_hint(titles: List[str]) -> str:
    """Appended to the generation prompt so known critical scenarios keep their titles."""
    if not titles:
        return ""
    return (
        "\nWhen one of these scenarios applies, use exactly this title: "
        + "; ".join(f'"{title}"' for title in titles) + "\n"
    )
