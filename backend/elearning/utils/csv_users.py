"""CSV parsing for bulk user creation.

Expected header: `email,name,role,password` (`role` optional, defaults
to STUDENT). Rows are returned as dictionaries together with their
1-based line number so callers can report per-row errors.
"""

import csv
import io
from typing import Dict, List

REQUIRED_COLUMNS = ('email', 'name', 'password')


def parse_users_csv(b: bytes) -> List[Dict]:
    """Parse CSV bytes into `{line, email, name, role, password}` dicts.

    Raises `ValueError` when the file is not UTF-8 or misses a required
    column. Blank lines are skipped.
    """
    try:
        text = b.decode('utf-8-sig')
    except UnicodeDecodeError:
        raise ValueError('CSV file must be UTF-8 encoded')
    reader = csv.DictReader(io.StringIO(text))
    headers = [h.strip().lower() for h in (reader.fieldnames or [])]
    missing = [c for c in REQUIRED_COLUMNS if c not in headers]
    if missing:
        raise ValueError(f"missing CSV column(s): {', '.join(missing)}")
    reader.fieldnames = headers
    out = []
    for row in reader:
        values = {k: (v or '').strip() for k, v in row.items() if k}
        if not any(values.values()):
            continue
        out.append({
            'line': reader.line_num,
            'email': values.get('email', '').lower(),
            'name': values.get('name', ''),
            'role': (values.get('role') or 'STUDENT').upper(),
            'password': values.get('password', ''),
        })
    return out
