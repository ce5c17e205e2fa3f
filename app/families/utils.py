"""
Utility functions for the families app.
"""


def department_from_postal_code(postal_code: str) -> str:
    """
    Derive the French department code from a postal code.

    Overseas codes (97x, 98x) keep three digits; Corsican codes (20xxx) map
    to 2A below 20200 and 2B from there on.
    """
    code = (postal_code or '').strip().replace(' ', '')
    if len(code) < 2 or not code.isdigit():
        return ''
    if code.startswith(('97', '98')) and len(code) >= 3:
        return code[:3]
    if code.startswith('20') and len(code) == 5:
        return '2A' if int(code) < 20200 else '2B'
    return code[:2]
