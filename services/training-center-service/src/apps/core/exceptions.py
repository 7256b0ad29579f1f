# services/training-center-service/src/apps/core/exceptions.py
"""
Domain errors for the training center.

Each error maps to one kind of the shared error taxonomy, so the shared
DRF exception handler renders it with the matching HTTP status.
"""

from shared.common.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    PreconditionException,
)


# Conflict (409)

class AlreadyEnrolled(ConflictException):
    default_detail = 'Trainee already holds an active enrollment for this session.'
    error_code = 'ALREADY_ENROLLED'


class AlreadyQueued(ConflictException):
    default_detail = 'Trainee is already waiting in the queue for this session.'
    error_code = 'ALREADY_QUEUED'


class AttemptAlreadyExists(ConflictException):
    default_detail = 'An attempt for this exam has already been started.'
    error_code = 'ATTEMPT_ALREADY_EXISTS'


class AttemptAlreadyFinalized(ConflictException):
    default_detail = 'This attempt has already been submitted or expired.'
    error_code = 'ATTEMPT_ALREADY_FINALIZED'


class AttemptHasCertificate(ConflictException):
    default_detail = 'A certificate was issued for this attempt; it cannot be reset.'
    error_code = 'ATTEMPT_HAS_CERTIFICATE'


class TrainerConflict(ConflictException):
    default_detail = 'Trainer already has a session at this time.'
    error_code = 'TRAINER_CONFLICT'


# Precondition (422)

class SessionNotSchedulable(PreconditionException):
    default_detail = 'Session is not open for enrollment.'
    error_code = 'SESSION_NOT_SCHEDULABLE'


class InvalidSessionState(PreconditionException):
    default_detail = 'Session is not in a state that permits this operation.'
    error_code = 'INVALID_SESSION_STATE'


class NotEnrolled(PreconditionException):
    default_detail = 'Trainee has no active enrollment for this session.'
    error_code = 'NOT_ENROLLED'


class NotQueued(PreconditionException):
    default_detail = 'Trainee is not waiting in the queue for this session.'
    error_code = 'NOT_QUEUED'


class NoActiveAttempt(PreconditionException):
    default_detail = 'There is no attempt in progress for this exam.'
    error_code = 'NO_ACTIVE_ATTEMPT'


class ExamNotAvailable(PreconditionException):
    default_detail = 'This exam is not available.'
    error_code = 'EXAM_NOT_AVAILABLE'


class NotEligible(PreconditionException):
    default_detail = 'Trainee is not enrolled in the session this exam belongs to.'
    error_code = 'NOT_ELIGIBLE'


# Not found (404)

class SessionNotFound(NotFoundException):
    default_detail = 'Session not found.'
    error_code = 'SESSION_NOT_FOUND'


class ExamNotFound(NotFoundException):
    default_detail = 'Exam not found.'
    error_code = 'EXAM_NOT_FOUND'


class AttemptNotFound(NotFoundException):
    default_detail = 'Attempt not found.'
    error_code = 'ATTEMPT_NOT_FOUND'


class CertificateNotFound(NotFoundException):
    default_detail = 'Certificate not found.'
    error_code = 'CERTIFICATE_NOT_FOUND'


# Forbidden (403)

class PermissionDenied(ForbiddenException):
    default_detail = 'Only admins and trainers may perform this action.'
    error_code = 'PERMISSION_DENIED'
