"""
Supabase client access.

One lazily created client is shared by the data services. When the
credentials are missing the dashboard still starts: every data call
degrades to its empty/placeholder result instead.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

logger = logging.getLogger(__name__)

PLACEHOLDER_URL = "https://your-project.supabase.co"

_supabase_client = None


def get_credentials() -> tuple[str, str]:
    url = (os.environ.get('SUPABASE_URL') or '').strip()
    key = (
        os.environ.get('SUPABASE_SERVICE_KEY')
        or os.environ.get('SUPABASE_ANON_KEY')
        or ''
    ).strip()
    return url, key


def is_supabase_configured() -> bool:
    url, key = get_credentials()
    return bool(url and key and url != PLACEHOLDER_URL)


def create_supabase():
    """Create a fresh client (used where auth state must not be shared)."""
    from supabase import create_client
    url, key = get_credentials()
    return create_client(url, key)


def get_supabase():
    """Lazy-initialize the shared Supabase client. Returns None when unavailable."""
    global _supabase_client
    if _supabase_client is None and is_supabase_configured():
        try:
            _supabase_client = create_supabase()
        except Exception as e:
            logger.warning(f"Supabase disabled: failed to init client: {e}")
    return _supabase_client
