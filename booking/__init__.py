"""Booking rules shared by the court reservation and lesson flows.

Nothing in this package touches the database: routes load the day's courts,
coaches and events and hand plain objects to these functions.
"""
