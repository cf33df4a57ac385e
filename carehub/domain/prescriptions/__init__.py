"""Prescription domain - a patient's run of a protocol and its progress"""
