"""Daily check-in domain - per-protocol questions and the patient's daily answers"""
