"""Cross-cutting routes: auth, admin, subscription, google calendar, AI"""
