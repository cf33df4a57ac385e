"""Habit domain - personal habits a patient ticks off day by day"""
