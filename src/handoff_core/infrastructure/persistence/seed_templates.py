"""Built-in troubleshooting templates seeded into an empty store."""

DEFAULT_TEMPLATES = [
    {
        "name": "VPN / Network Connectivity",
        "description": "User cannot reach internal resources over VPN or the office network",
        "category": "Network",
        "checklist_items": [
            {"text": "Confirmed internet access without VPN", "checked": False},
            {"text": "Restarted VPN client", "checked": False},
            {"text": "Verified VPN client version is current", "checked": False},
            {"text": "Checked account is not locked or expired", "checked": False},
            {"text": "Tried alternate network (hotspot)", "checked": False},
            {"text": "Collected VPN client logs", "checked": False},
        ],
        "l2_team": "Network Operations",
    },
    {
        "name": "Application Crash",
        "description": "Desktop or web application crashes, freezes or fails to start",
        "category": "Application",
        "checklist_items": [
            {"text": "Reproduced the crash and noted exact steps", "checked": False},
            {"text": "Restarted the application and the machine", "checked": False},
            {"text": "Cleared application cache / local data", "checked": False},
            {"text": "Checked for pending updates", "checked": False},
            {"text": "Reinstalled the application", "checked": False},
            {"text": "Collected crash dump or application logs", "checked": False},
        ],
        "l2_team": "Application Support",
    },
    {
        "name": "Access / Permissions",
        "description": "User is denied access to a system, share or application feature",
        "category": "Access",
        "checklist_items": [
            {"text": "Confirmed the exact resource and error message", "checked": False},
            {"text": "Verified group membership in the directory", "checked": False},
            {"text": "Checked for pending access request approval", "checked": False},
            {"text": "Had user sign out and back in to refresh tokens", "checked": False},
            {"text": "Compared with a colleague who has working access", "checked": False},
        ],
        "l2_team": "Identity & Access Management",
    },
]
