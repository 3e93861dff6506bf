"""
sample_data.py
デモ・テスト用のサンプルカタログ
"""

SAMPLE_CATALOG = {
    "project": "Language Management System",
    "languages": ["en", "de"],
    "translations": {
        "auth": {
            "login": {
                "title": {"en": "Login", "de": "Anmelden"},
                "subtitle": {"en": "Welcome back", "de": "Willkommen zurück"},
                "button": {"en": "Sign In", "de": "Einloggen"},
                "forgot_password": {"en": "Forgot password?", "de": ""},
            },
            "register": {
                "title": {"en": "Create Account", "de": "Konto erstellen"},
                "subtitle": {"en": "Join us today", "de": "Heute beitreten"},
            },
        },
        "dashboard": {
            "welcome": {"en": "Hello User", "de": "Hallo Benutzer"},
            "stats": {
                "title": {"en": "Statistics", "de": "Statistiken"},
                "description": {"en": "Your performance overview", "de": ""},
            },
        },
        "common": {
            "buttons": {
                "save": {"en": "Save", "de": "Speichern"},
                "cancel": {"en": "Cancel", "de": "Abbrechen"},
                "delete": {"en": "Delete", "de": "Löschen"},
            },
            "errors": {
                "not_found": {"en": "Not found", "de": "Nicht gefunden"},
                "server_error": {"en": "Server error", "de": ""},
            },
        },
    },
}
