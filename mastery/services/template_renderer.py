"""
Placeholder substitution for email templates.

Only the placeholders in ALLOWED_PLACEHOLDERS are replaced. Substitution is a
single pass over the template, so a value that itself contains ``{email}`` is
never expanded again, and HTML bodies get HTML-escaped values.
"""

import re
from typing import Dict

from markupsafe import escape

PLACEHOLDER_PATTERN = re.compile(r'\{([a-z_]+)\}')

ALLOWED_PLACEHOLDERS = ('contact_name', 'first_name', 'last_name', 'email')


def contact_variables(contact) -> Dict[str, str]:
    return {
        'contact_name': contact.full_name,
        'first_name': contact.first_name or '',
        'last_name': contact.last_name or '',
        'email': contact.email or '',
    }


def render(template: str, variables: Dict[str, str], html: bool = True) -> str:
    """Substitute allow-listed placeholders; unknown tokens are left as-is."""
    if not template:
        return ''

    def _replace(match):
        name = match.group(1)
        if name not in ALLOWED_PLACEHOLDERS or name not in variables:
            return match.group(0)
        value = variables[name] or ''
        return str(escape(value)) if html else str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def render_for_contact(subject: str, html_body: str, contact):
    variables = contact_variables(contact)
    return render(subject, variables, html=False), render(html_body, variables, html=True)
