"""
Submission gating for page-level forms.

A `FormState` ties a form's current values to its validator and tracks whether a
request is in flight, so a page can disable its submit button and can never send
the same form twice at once.
"""
# dialysislive/forms.py

import logging

from dialysislive.errors import (
    ApiError,
    SessionExpiredError,
    SubmissionInProgressError,
    SubscriptionError,
    ValidationError,
    user_message,
)

logger = logging.getLogger(__name__)


class FormState:
    """The state of one form between renders.

    Attributes:
        values (dict): The current field values.
        in_flight (bool): True while `submit` is waiting for its action.
        error (str): The message to show for the last failed submission, if any.
        limit_error (SubscriptionError): Set when the last submission hit a plan limit.
    """
    def __init__(self, validator, values=None):
        self.validator = validator
        self.values = dict(values or {})
        self.in_flight = False
        self.error = None
        self.limit_error = None

    def update(self, **values):
        self.values.update(values)

    def errors(self):
        return self.validator(self.values)

    @property
    def can_submit(self) -> bool:
        return not self.in_flight and not self.errors()

    def submit(self, action):
        """Validates the values and runs `action(values)`.

        Returns:
            The action's result, or None if the API call failed. The failure is
            recorded in `error` or `limit_error`.

        Raises:
            ValidationError: If any field is invalid.
            SubmissionInProgressError: If a previous submission has not finished.
        """
        if self.in_flight:
            raise SubmissionInProgressError("This form is already being submitted.")
        errors = self.errors()
        if errors:
            raise ValidationError(errors)

        self.error = None
        self.limit_error = None
        self.in_flight = True
        try:
            return action(self.values)
        except SessionExpiredError:
            raise
        except SubscriptionError as e:
            logger.info("Submission blocked by subscription: %s", e.code)
            self.limit_error = e
            return None
        except ApiError as e:
            logger.warning("Submission failed: %s", e)
            self.error = user_message(e)
            return None
        finally:
            self.in_flight = False
