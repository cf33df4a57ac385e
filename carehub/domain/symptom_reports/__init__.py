"""Symptom report domain - patients report symptoms during a protocol, doctors review them"""
