"""Booking policies applied on top of generated slots."""
from clinic_availability.policies.booking_rules import BookingPolicy, bypass_for_role

__all__ = ["BookingPolicy", "bypass_for_role"]
