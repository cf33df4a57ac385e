"""Appointment domain - doctor-patient appointments, mirrored to Google Calendar when connected"""
