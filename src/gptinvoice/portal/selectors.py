from __future__ import annotations

import re
from dataclasses import dataclass


# Runs inside the portal page. For every invoice link (DOM order) returns the absolute href and the
# text of its row, so date parsing stays on the Python side.
INVOICE_ROWS_SCRIPT = """
(selector) => {
  const results = [];
  document.querySelectorAll(selector).forEach((link) => {
    let row = link.closest('tr');
    if (!row) {
      const tagged = link.closest('[data-testid]');
      row = tagged ? tagged.parentElement : null;
    }
    results.push({ url: link.href, text: row ? (row.textContent || '') : null });
  });
  return results;
}
"""


@dataclass(frozen=True)
class PortalSelectors:
    """
    The invoice portal is a third-party web UI; selectors may change without notice.
    Keep all selectors/format hooks here for easy maintenance.
    """

    # Invoice list
    invoice_link: str = 'a[data-testid="hip-link"]'
    invoice_rows_script: str = INVOICE_ROWS_SCRIPT

    # Invoice detail page
    download_button: str = "button.Button--primary"

    # "Jan 15, 2024" / "Jan 5 2024" or "2024-01-15"
    date_pattern: str = r"(\w{3}\s+\d{1,2},?\s+\d{4})|(\d{4}-\d{2}-\d{2})"

    @property
    def date_re(self) -> re.Pattern[str]:
        # ASCII-only \w and \d: localized digits or accented month names stay "unknown".
        return re.compile(self.date_pattern, re.ASCII)
