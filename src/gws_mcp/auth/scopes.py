"""
Google OAuth Scopes for gws-mcp.

This module defines the OAuth scopes requested at login and when building
the per-account service clients.
"""

from typing import List

# Google Drive
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"

# Gmail
GMAIL_READONLY_SCOPE = "https://www.googleapis.com/auth/gmail.readonly"
GMAIL_SEND_SCOPE = "https://www.googleapis.com/auth/gmail.send"
GMAIL_MODIFY_SCOPE = "https://www.googleapis.com/auth/gmail.modify"

GMAIL_SCOPES = [GMAIL_READONLY_SCOPE, GMAIL_SEND_SCOPE, GMAIL_MODIFY_SCOPE]

# Calendar, Sheets, Contacts, Docs, Tasks
CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar"
SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
CONTACTS_SCOPE = "https://www.googleapis.com/auth/contacts"
DOCS_SCOPE = "https://www.googleapis.com/auth/documents"
TASKS_SCOPE = "https://www.googleapis.com/auth/tasks"

# Everything the server asks for. Changing this list requires users to log in again.
SCOPES = [
    DRIVE_SCOPE,
    *GMAIL_SCOPES,
    CALENDAR_SCOPE,
    SHEETS_SCOPE,
    CONTACTS_SCOPE,
    DOCS_SCOPE,
    TASKS_SCOPE,
]


def get_scopes() -> List[str]:
    """
    Get the list of OAuth scopes required by gws-mcp.

    Returns:
        List of unique OAuth scopes, in declaration order.
    """
    return list(dict.fromkeys(SCOPES))
