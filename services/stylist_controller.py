"""
Stylist Controller

Owns the whole application state (mode, images, generated result,
conversation) and exposes it through named actions. At most one network
action runs at a time per controller.
"""

import threading
from contextlib import contextmanager
from typing import Callable, Optional

from models.schemas import ImagePayload, Mode, StylistState
from .consultant_chat import chat_with_consultant
from .gemini_generator import generate_eyewear_image

CONSULTANT_INSTRUCTION = "Stylish, modern eyeglasses that suit this face shape. Professional and chic."
TRY_ON_INSTRUCTION = "Specific glasses overlay"

WELCOME_MESSAGES = {
    Mode.CONSULTANT: "من بر اساس چهره شما این سبک را پیشنهاد دادم. چطور است؟ می‌توانیم رنگ یا مدل را تغییر دهیم.",
    Mode.TRY_ON: "عینک انتخابی شما روی صورت قرار گرفت. آیا نیاز به تنظیمات بیشتری دارید؟",
}

VISUALIZE_PREFIX = "تغییر طرح: "
VISUALIZE_DONE_TEXT = "تغییرات اعمال شد. تصویر جدید را مشاهده کنید. آیا این سبک را می‌پسندید؟"
VISUALIZE_FAILED_TEXT = "متاسفم، نتوانستم تصویر را ویرایش کنم."

MISSING_SUBJECT_ALERT = "لطفا ابتدا تصویر چهره را آپلود کنید"
MISSING_REFERENCE_ALERT = "لطفا تصویر عینک را نیز آپلود کنید"
EMPTY_MESSAGE_ALERT = "لطفا متن پیام را وارد کنید"
GENERATION_FAILED_ALERT = "خطا در پردازش تصویر. لطفا دوباره تلاش کنید."
BUSY_ALERT = "لطفا تا پایان درخواست قبلی صبر کنید"


class StylistError(Exception):
    """Base class for errors shown to the user"""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(StylistError):
    """Required input missing; nothing was sent"""


class BusyError(StylistError):
    """Another network action is still in flight"""


class GenerationFailedError(StylistError):
    """Initial generation failed; prior state kept"""


class TaskGuard:
    """
    Single-slot guard for network actions.

    States are 'idle' and 'in_flight'. A second action while one is in
    flight is rejected, not queued.
    """

    IDLE = "idle"
    IN_FLIGHT = "in_flight"

    def __init__(self, on_change: Optional[Callable[[bool], None]] = None):
        self._lock = threading.Lock()
        self._state = self.IDLE
        self._on_change = on_change

    @property
    def state(self) -> str:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state == self.IN_FLIGHT

    @contextmanager
    def hold(self):
        if not self._lock.acquire(blocking=False):
            raise BusyError(BUSY_ALERT)
        self._state = self.IN_FLIGHT
        self._notify(True)
        try:
            yield
        finally:
            self._state = self.IDLE
            self._lock.release()
            self._notify(False)

    def _notify(self, busy: bool) -> None:
        if self._on_change is not None:
            try:
                self._on_change(busy)
            except Exception as e:
                print(f"  ⚠ Busy listener failed: {e}")


def _as_payload(image) -> ImagePayload:
    if isinstance(image, ImagePayload):
        return image
    return ImagePayload.from_data_url(image)


class StylistController:
    """Single owner of the stylist state"""

    def __init__(self, generator=generate_eyewear_image, consultant=chat_with_consultant, on_busy_change=None):
        """
        Args:
            generator: fn(source, instruction, reference=None) -> PNG data URL
            consultant: fn(message, history) -> ConsultantReply
            on_busy_change: Optional callback(bool) fired when the guard flips
        """
        self._state = StylistState()
        self._generator = generator
        self._consultant = consultant
        self._guard = TaskGuard(on_change=on_busy_change)

    # Read-only accessors --------------------------------------------------

    @property
    def mode(self) -> Mode:
        return self._state.mode

    @property
    def subject_image(self) -> Optional[ImagePayload]:
        return self._state.subject_image

    @property
    def reference_image(self) -> Optional[ImagePayload]:
        return self._state.reference_image

    @property
    def generated_image(self) -> Optional[str]:
        return self._state.generated_image

    @property
    def messages(self):
        return self._state.conversation.messages

    @property
    def busy(self) -> bool:
        return self._guard.busy

    @property
    def phase(self) -> str:
        """Derived UI phase"""
        state = self._state
        if state.subject_image is None:
            return "NoSubjectImage"
        if state.generated_image is not None:
            return "ResultDisplayed"
        if state.mode == Mode.TRY_ON and state.reference_image is None:
            return "TryOnAwaitingReference"
        return "ReadyToGenerate"

    def snapshot(self) -> dict:
        state = self._state
        return {
            "mode": state.mode.value,
            "phase": self.phase,
            "busy": self.busy,
            "subject_image": state.subject_image.to_data_url() if state.subject_image else None,
            "reference_image": state.reference_image.to_data_url() if state.reference_image else None,
            "generated_image": state.generated_image,
            "messages": [m.to_dict() for m in state.conversation],
        }

    # Actions -------------------------------------------------------------

    def set_mode(self, mode) -> None:
        self._state.mode = Mode(mode)

    def upload_subject_image(self, image) -> None:
        """New face: replaces the subject and drops the stale result"""
        self._state.subject_image = _as_payload(image)
        self._state.generated_image = None

    def upload_reference_image(self, image) -> None:
        self._state.reference_image = _as_payload(image)

    def reset(self) -> None:
        self._state = StylistState(mode=self._state.mode)

    def generate(self) -> str:
        """
        Run the initial generation for the current mode.

        Returns:
            str: The new generated image data URL

        Raises:
            ValidationError: Subject (or, in try-on, reference) image missing
            BusyError: Another action is in flight
            GenerationFailedError: The generator failed; state is unchanged
        """
        state = self._state
        if state.subject_image is None:
            raise ValidationError(MISSING_SUBJECT_ALERT)
        if state.mode == Mode.TRY_ON and state.reference_image is None:
            raise ValidationError(MISSING_REFERENCE_ALERT)

        mode = state.mode
        subject = state.subject_image
        with self._guard.hold():
            try:
                if mode == Mode.CONSULTANT:
                    result = self._generator(subject, CONSULTANT_INSTRUCTION)
                else:
                    result = self._generator(subject, TRY_ON_INSTRUCTION, state.reference_image)
            except Exception as e:
                print(f"  ✗ Generation failed: {e}")
                raise GenerationFailedError(GENERATION_FAILED_ALERT) from e

            if state.subject_image is not subject:
                # Face was replaced mid-request; this result belongs to the old one
                print("  ⚠ Subject changed during generation, discarding result")
                return result

            state.generated_image = result
            if state.conversation.is_empty():
                state.conversation.add_model_message(WELCOME_MESSAGES[mode])
            return result

    def send_chat_message(self, text: str):
        """
        Ask the consultant; appends the user message then the reply.

        Returns:
            ChatMessage: The model reply
        """
        if not text or not text.strip():
            raise ValidationError(EMPTY_MESSAGE_ALERT)

        conversation = self._state.conversation
        with self._guard.hold():
            history = conversation.history()
            conversation.add_user_message(text)
            reply = self._consultant(text, history)
            return conversation.add_model_message(reply.text, links=list(reply.links))

    def request_visualization(self, text: str):
        """
        Regenerate from the original subject image with a new instruction.

        The previously generated image is never fed back in, so repeated
        edits don't compound artefacts.

        Returns:
            ChatMessage: The confirmation or apology message
        """
        if self._state.subject_image is None:
            raise ValidationError(MISSING_SUBJECT_ALERT)
        if not text or not text.strip():
            raise ValidationError(EMPTY_MESSAGE_ALERT)

        state = self._state
        subject = state.subject_image
        with self._guard.hold():
            state.conversation.add_user_message(f"{VISUALIZE_PREFIX}{text}")
            try:
                result = self._generator(subject, text)
            except Exception as e:
                print(f"  ✗ Visualization failed: {e}")
                return state.conversation.add_model_message(VISUALIZE_FAILED_TEXT)

            if state.subject_image is not subject:
                print("  ⚠ Subject changed during visualization, discarding result")
                return state.conversation.add_model_message(VISUALIZE_FAILED_TEXT)

            state.generated_image = result
            return state.conversation.add_model_message(VISUALIZE_DONE_TEXT)
