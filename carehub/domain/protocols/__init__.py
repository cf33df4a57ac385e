"""Protocol domain - doctor-authored day/session/task plans"""
