"""Clinic domain - clinics, members and subscription usage"""
