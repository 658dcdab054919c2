"""
Phone/OTP authentication state machine.

    UNAUTHENTICATED --request_otp--> (dispatch latency) --> AWAITING_OTP
    AWAITING_OTP --verify_otp("123456")--> AUTHENTICATED
    AWAITING_OTP --cancel_otp--> UNAUTHENTICATED (form kept)
    AUTHENTICATED --logout--> UNAUTHENTICATED

OTP delivery is simulated: the only code ever issued is the sentinel
``"123456"``.
"""

import math
import re
from collections.abc import Callable

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from pixelpilot.auth.countries import CountryDirectory
from pixelpilot.auth.models import SENTINEL_OTP, AuthStep, PersistedAuthState, PhoneForm, User
from pixelpilot.core.exceptions import (
    CooldownError,
    InvalidOtpError,
    InvalidStateError,
    ValidationError,
)
from pixelpilot.core.scheduler import Scheduler, TimerHandle
from pixelpilot.core.storage import StorageBackend

AUTH_STORAGE_KEY = "auth-storage"

PHONE_PATTERN = re.compile(r"^[0-9]{10,15}$")
OTP_PATTERN = re.compile(r"^[0-9]{6}$")

AuthListener = Callable[["AuthEngine"], None]


def validate_phone_form(dial_code: str, phone_digits: str) -> dict[str, str]:
    """Check the collect-phone fields.

    Returns:
        Mapping of field name to error message; empty when valid.
    """
    errors: dict[str, str] = {}
    if not dial_code.strip():
        errors["dial_code"] = "Country code is required."
    if not PHONE_PATTERN.fullmatch(phone_digits):
        errors["phone_digits"] = "Invalid phone number!"
    return errors


class AuthEngine:
    """
    Authentication flow with persisted session.

    Usage:
        engine = AuthEngine(storage, scheduler)
        engine.rehydrate()
        engine.request_otp("+91", "9876543210")
        # ... after the dispatch latency
        engine.verify_otp("123456")

    Attributes:
        step: Current AuthStep.
        user: Signed-in user, or None.
        form: Dial code and phone digits last submitted.
        loading: True until rehydrate() has run.
        busy: True while an OTP dispatch or resend is in flight.
    """

    def __init__(
        self,
        storage: StorageBackend,
        scheduler: Scheduler,
        directory: CountryDirectory | None = None,
        otp_send_delay: float = 2.0,
        otp_resend_delay: float = 1.5,
        resend_cooldown: float = 30.0,
    ) -> None:
        self.storage = storage
        self.scheduler = scheduler
        self.directory = directory
        self.otp_send_delay = otp_send_delay
        self.otp_resend_delay = otp_resend_delay
        self.resend_cooldown = resend_cooldown

        self.step = AuthStep.UNAUTHENTICATED
        self.user: User | None = None
        self.form = PhoneForm()
        self.loading = True
        self.busy = False

        self._dispatch_timer: TimerHandle | None = None
        self._resend_timer: TimerHandle | None = None
        self._cooldown_until: float | None = None
        self._listeners: list[AuthListener] = []

    # =========================================================================
    # READ SIDE
    # =========================================================================

    @property
    def is_authenticated(self) -> bool:
        return self.step is AuthStep.AUTHENTICATED

    @property
    def resend_cooldown_remaining(self) -> int:
        """Whole seconds left before a resend is accepted (0 when allowed)."""
        if self._cooldown_until is None:
            return 0
        remaining = self._cooldown_until - self.scheduler.now()
        return math.ceil(remaining) if remaining > 0 else 0

    @property
    def can_resend(self) -> bool:
        return self.step is AuthStep.AWAITING_OTP and self.resend_cooldown_remaining == 0

    @property
    def can_request_otp(self) -> bool:
        """Whether the collect-phone step accepts a submission.

        An empty country directory disables submission rather than failing.
        """
        if self.step is not AuthStep.UNAUTHENTICATED or self.busy:
            return False
        return self.directory is None or not self.directory.is_empty

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            Callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =========================================================================
    # OTP FLOW
    # =========================================================================

    def request_otp(self, dial_code: str, phone_digits: str) -> TimerHandle:
        """Submit the phone number and start the simulated OTP dispatch.

        Args:
            dial_code: Country calling code, e.g. ``"+91"``.
            phone_digits: 10 to 15 decimal digits.

        Returns:
            Handle of the pending dispatch.

        Raises:
            ValidationError: If either field is malformed, or the attached
                country directory is empty. State is unchanged.
            InvalidStateError: If not on the collect-phone step or a
                dispatch is already in flight.
        """
        if self.step is not AuthStep.UNAUTHENTICATED:
            raise InvalidStateError(f"Cannot request an OTP while {self.step.value}")
        if self._dispatch_timer is not None and self._dispatch_timer.active:
            raise InvalidStateError("An OTP request is already in flight")

        errors = validate_phone_form(dial_code, phone_digits)
        if self.directory is not None and self.directory.is_empty:
            errors["dial_code"] = "Country list unavailable."
        if errors:
            raise ValidationError(errors)

        self.form = PhoneForm(dial_code=dial_code.strip(), phone_digits=phone_digits)
        self.busy = True
        self._dispatch_timer = self.scheduler.schedule_after(self.otp_send_delay, self._on_otp_sent)
        logger.info(f"Requesting OTP for {self.form.full_number}")
        self._notify()
        return self._dispatch_timer

    def _on_otp_sent(self) -> None:
        self._dispatch_timer = None
        self.busy = False
        self.step = AuthStep.AWAITING_OTP
        logger.info(f"OTP sent to {self.form.full_number} (mock OTP is {SENTINEL_OTP})")
        self._persist()
        self._notify()

    def resend_otp(self) -> TimerHandle:
        """Re-issue the OTP after the resend latency.

        Returns:
            Handle of the pending resend.

        Raises:
            InvalidStateError: If no OTP is awaited.
            CooldownError: If the previous resend was too recent.
        """
        if self.step is not AuthStep.AWAITING_OTP:
            raise InvalidStateError("No OTP to resend")

        remaining = self.resend_cooldown_remaining
        if remaining > 0:
            raise CooldownError(remaining)

        if self._resend_timer is not None:
            self._resend_timer.cancel()

        self._cooldown_until = self.scheduler.now() + self.resend_cooldown
        self.busy = True
        self._resend_timer = self.scheduler.schedule_after(
            self.otp_resend_delay, self._on_otp_resent
        )
        logger.info(f"Resending OTP to {self.form.full_number}")
        self._notify()
        return self._resend_timer

    def _on_otp_resent(self) -> None:
        self._resend_timer = None
        self.busy = False
        logger.info(f"OTP resent to {self.form.full_number} (mock OTP is {SENTINEL_OTP})")
        self._notify()

    def verify_otp(self, code: str) -> User:
        """Check the submitted OTP and sign in on success.

        Raises:
            InvalidStateError: If no OTP is awaited.
            ValidationError: If ``code`` is not exactly 6 digits.
            InvalidOtpError: If the code is wrong. The entered phone number
                is kept so the user can retry.
        """
        if self.step is not AuthStep.AWAITING_OTP:
            raise InvalidStateError("No OTP is awaiting verification")
        if not OTP_PATTERN.fullmatch(code):
            raise ValidationError.single("otp", "OTP must be exactly 6 digits.")
        if code != SENTINEL_OTP:
            logger.warning(f"Incorrect OTP submitted for {self.form.full_number}")
            raise InvalidOtpError()

        self._cancel_timers()
        self.busy = False
        self.user = User(phone_number=self.form.full_number)
        self.step = AuthStep.AUTHENTICATED
        logger.info(f"Signed in as {self.user.phone_number}")
        self._persist()
        self._notify()
        return self.user

    def cancel_otp(self) -> None:
        """Go back to the collect-phone step, keeping the entered fields.

        The resend cooldown keeps running.
        """
        if self.step is AuthStep.AUTHENTICATED:
            raise InvalidStateError("Already signed in")

        pending = self._dispatch_timer is not None and self._dispatch_timer.active
        if self.step is AuthStep.UNAUTHENTICATED and not pending:
            return

        self._cancel_timers()
        self.busy = False
        self.step = AuthStep.UNAUTHENTICATED
        logger.debug("Returned to phone entry")
        self._persist()
        self._notify()

    def logout(self) -> None:
        """Sign out. Chat data is left untouched."""
        if self.step is not AuthStep.AUTHENTICATED:
            logger.debug("Logout requested while signed out")
            return

        logger.info(f"Signing out {self.user.phone_number if self.user else 'unknown user'}")
        self.user = None
        self.step = AuthStep.UNAUTHENTICATED
        self.form = PhoneForm()
        self._cooldown_until = None
        self._persist()
        self._notify()

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def rehydrate(self) -> None:
        """Restore the persisted session and clear the loading flag."""
        state = self.storage.read_state(AUTH_STORAGE_KEY)
        if state is not None:
            try:
                persisted = PersistedAuthState.model_validate(state)
            except PydanticValidationError as e:
                logger.warning(f"Ignoring invalid persisted auth state: {e.error_count()} error(s)")
                persisted = PersistedAuthState()

            if persisted.is_authenticated and persisted.user is not None:
                self.user = persisted.user
                self.step = AuthStep.AUTHENTICATED
                logger.info(f"Restored session for {self.user.phone_number}")

        self.loading = False
        self._notify()

    def _persist(self) -> None:
        snapshot = PersistedAuthState(is_authenticated=self.is_authenticated, user=self.user)
        self.storage.write_state(AUTH_STORAGE_KEY, snapshot.model_dump(by_alias=True, mode="json"))

    # =========================================================================
    # TEARDOWN
    # =========================================================================

    def _cancel_timers(self) -> None:
        for timer in (self._dispatch_timer, self._resend_timer):
            if timer is not None:
                timer.cancel()
        self._dispatch_timer = None
        self._resend_timer = None

    def dispose(self) -> None:
        """Cancel pending timers and drop listeners."""
        self._cancel_timers()
        self._listeners.clear()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
