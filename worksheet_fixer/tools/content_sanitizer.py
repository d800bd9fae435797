"""Strip non-saveable editor widgets from page HTML."""
import logging

from bs4 import BeautifulSoup, ParserRejectedMarkup

from worksheet_fixer.models.outcome import SanitizeResult

logger = logging.getLogger(__name__)

# Live math editor widgets cannot be restored from saved HTML
DEFAULT_DISALLOWED_SELECTOR = '[data-js="mathEditor"]'


def sanitize(fragment: str, disallowed_selector: str = DEFAULT_DISALLOWED_SELECTOR) -> SanitizeResult:
    """
    Remove every element matching disallowed_selector (with its subtree).

    The fragment is parsed leniently with html.parser, so half-written editor
    markup never raises. When nothing matches the original fragment is
    returned untouched.

    Returns:
        SanitizeResult(changed, html, removed) where removed holds a short
        description of each dropped element.
    """
    if not fragment:
        return SanitizeResult(changed=False, html=fragment)

    try:
        soup = BeautifulSoup(fragment, "html.parser")
    except ParserRejectedMarkup as e:
        logger.warning(f"Could not parse page markup, leaving it as-is: {e}")
        return SanitizeResult(changed=False, html=fragment)

    matches = soup.select(disallowed_selector)
    if not matches:
        return SanitizeResult(changed=False, html=fragment)

    removed = []
    for el in matches:
        removed.append(describe_element(el))
        # extract() is safe on elements already detached with a matched parent
        el.extract()

    return SanitizeResult(changed=True, html=soup.decode(), removed=removed)


def describe_element(el) -> str:
    """div[class="..."][data-js="..."][id="..."] for progress messages."""
    classes = el.get("class")
    if isinstance(classes, list):
        classes = " ".join(classes)
    return (
        f'{el.name}[class="{classes}"]'
        f'[data-js="{el.get("data-js")}"]'
        f'[id="{el.get("id")}"]'
    )
