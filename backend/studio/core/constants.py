# backend/studio/core/constants.py
"""Shared constants for the studio booking engine."""

BRAND_NAME = "Studio Booking"

API_V1_PREFIX = "/api/v1"

# Conflict messages surfaced to callers
CUSTOMER_CONFLICT_MESSAGE = "You already have a booking scheduled at this time"
TEACHER_CONFLICT_MESSAGE = "Teacher already has a booking that overlaps this time"
GROUP_SESSION_BLOCK_MESSAGE = "A group class is scheduled during this time"
CAPACITY_EXCEEDED_MESSAGE = "Studio is at capacity for this time"
GROUP_NOT_ALLOWED_MESSAGE = "Group class is not allowed while another teacher is teaching"
GENERIC_CONFLICT_MESSAGE = "This time slot conflicts with an existing booking"

ALREADY_PROCESSED_MESSAGE = "Booking has already been processed"

# Name of the partial unique index backing the teacher double-booking guard
TEACHER_SLOT_UNIQUE_INDEX = "uq_bookings_teacher_active_slot"
IDEMPOTENCY_UNIQUE_CONSTRAINT = "uq_bookings_idempotency_key"
