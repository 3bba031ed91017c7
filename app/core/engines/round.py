from __future__ import annotations
from typing import Any, Callable, Optional
import logging, random, uuid

from app.core.content import grade_key
from app.core.engines.base import EXPIRY_FAIL, Feedback, ModePolicy, Phase, RoundState
from app.core.engines.clock import Scheduler, TimerHandle
from app.core.engines.errors import ContentUnavailable, InvalidSubmission
from app.core.engines.supplier import ContentSupplier, load_content
from app.core.settings_games import scaled_delay
from app.schemas.game import StoryGraph

log = logging.getLogger(__name__)

OnComplete = Callable[[int, bool], None]
OnCancel = Callable[[], None]


class RoundEngine:
    """
    Máquina de estados de una ronda:

        loading -> active -> feedback <-> active -> terminated
        loading -> error (retry() / cancel())

    Dueña exclusiva de su RoundState y de sus timers. Exactamente uno de
    on_complete(points, penalty) / on_cancel() se llama, y una sola vez.
    """

    def __init__(
        self,
        policy: ModePolicy,
        subject,
        grade,
        *,
        supplier: ContentSupplier,
        scheduler: Scheduler,
        on_complete: OnComplete,
        on_cancel: Optional[OnCancel] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        session_id: Optional[str] = None,
    ):
        self.policy = policy
        self.session_id = session_id or uuid.uuid4().hex
        self.subject = subject
        self.grade = grade
        self._supplier = supplier
        self._scheduler = scheduler
        self._on_complete = on_complete
        self._on_cancel = on_cancel
        self._rng = rng or random.Random(seed)

        self._ticker: Optional[TimerHandle] = None
        self._feedback_timer: Optional[TimerHandle] = None
        self._load_token = 0
        self._loading = False
        self._closed = False

        self.state = RoundState(
            mode=policy.slug,
            subject=str(getattr(subject, "value", subject)),
            grade=grade_key(grade),
        )
        policy.setup(self.state, self._rng)

    @property
    def closed(self) -> bool:
        return self._closed

    # ---- Carga ---------------------------------------------------------------
    async def start(self) -> None:
        """Pide el contenido. Único punto donde el motor se suspende; una sola carga a la vez."""
        if self._closed or self._loading or self.state.phase not in (Phase.loading, Phase.error):
            return
        self._load_token += 1
        token = self._load_token
        self.state.phase = Phase.loading
        self.state.error = None

        self._loading = True
        try:
            content = await load_content(self.policy, self._supplier, self.subject, self.grade)
        except ContentUnavailable as e:
            if token != self._load_token or self._closed:
                return
            self.state.phase = Phase.error
            self.state.error = str(e)
            log.info("round %s (%s) content unavailable: %s", self.session_id, self.policy.slug, e)
            return
        finally:
            self._loading = False

        # respuesta vieja: la ronda se canceló o se re-pidió mientras esperábamos
        if token != self._load_token or self._closed:
            return

        if isinstance(content, StoryGraph):
            self.state.story = content
            self.state.current_node_id = content.start_node_id
        else:
            self.state.items = list(content)
            self.state.current_index = 0
        log.info("round %s (%s) started for %s grade %s",
                 self.session_id, self.policy.slug, self.state.subject, self.state.grade)
        self._show_item()

    async def retry(self) -> None:
        if self.state.phase == Phase.error:
            await self.start()

    # ---- Respuestas ----------------------------------------------------------
    def submit(self, answer: Any) -> bool:
        """
        Respuesta del jugador para el ítem actual. Devuelve False si se ignoró
        (fuera de Active, segunda respuesta al mismo ítem, decisión inexistente).
        """
        try:
            self._resolve(answer)
        except InvalidSubmission as e:
            log.debug("round %s ignored submission: %s", self.session_id, e)
            return False
        return True

    def _resolve(self, answer: Any, timed_out: bool = False) -> None:
        st = self.state
        if self._closed or st.phase != Phase.active:
            raise InvalidSubmission(f"phase={st.phase.value}")

        if st.story is not None:
            node = st.current_node
            choice = None
            if isinstance(answer, int) and not isinstance(answer, bool):
                if 0 <= answer < len(node.choices):
                    choice = node.choices[answer]
            else:
                choice = next((c for c in node.choices if c.text == str(answer)), None)
            if choice is None:
                raise InvalidSubmission(f"unknown choice {answer!r}")
            correct = choice.is_correct
            st.pending_node_id = choice.next_node_id
            st.feedback = Feedback(correct=correct, selected=choice.text)
        else:
            item = st.current_question
            if isinstance(answer, int) and not isinstance(answer, bool):
                selected = item.options[answer] if 0 <= answer < len(item.options) else ""
            else:
                selected = "" if answer is None else str(answer)
            correct = selected == item.correct_option
            st.feedback = Feedback(
                correct=correct,
                selected=selected,
                timed_out=timed_out,
                correct_option=item.correct_option,
                explanation=item.explanation,
            )

        st.phase = Phase.feedback
        st.answered += 1
        if correct:
            self.policy.on_correct(st)
        else:
            self.policy.on_incorrect(st)

        if not self.policy.ticks_in_feedback:
            self._stop_ticker()
        self._feedback_timer = self._scheduler.call_later(
            scaled_delay(self.policy.feedback_delay(correct)), self._after_feedback
        )

    def _after_feedback(self) -> None:
        st = self.state
        self._feedback_timer = None
        if self._closed or st.phase != Phase.feedback:
            return

        if self.policy.is_terminal(st):
            self._terminate()
            return

        if st.story is not None:
            nxt = st.pending_node_id
            st.pending_node_id = None
            node = st.story.get(nxt)
            if node is None:
                # callejón sin salida = final de la historia
                self._terminate()
                return
            st.current_node_id = nxt
            if not node.choices:
                # nodo de cierre: se muestra su texto pero no hay nada que elegir
                self._terminate()
                return
            self._show_item()
            return

        if self.policy.should_advance(st, st.feedback.correct):
            if st.is_last_item:
                self._terminate()
                return
            st.current_index += 1
        self._show_item()

    def _show_item(self) -> None:
        st = self.state
        st.feedback = None
        st.phase = Phase.active
        self.policy.on_item_shown(st)
        if self.policy.tick_interval and self._ticker is None:
            self._ticker = self._scheduler.call_every(self.policy.tick_interval, self._on_tick)

    # ---- Reloj ---------------------------------------------------------------
    def _on_tick(self) -> None:
        st = self.state
        if self._closed:
            return
        if st.phase != Phase.active and not (self.policy.ticks_in_feedback and st.phase == Phase.feedback):
            return
        if not self.policy.on_tick(st, self.policy.tick_interval):
            return

        if self.policy.on_expired(st) == EXPIRY_FAIL:
            st.failed = True
            self._terminate()
        elif st.phase == Phase.active:
            # timeout = respuesta vacía; pasa por el mismo Feedback que un error
            self._resolve("", timed_out=True)

    def _stop_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    def _cancel_timers(self) -> None:
        self._stop_ticker()
        if self._feedback_timer is not None:
            self._feedback_timer.cancel()
            self._feedback_timer = None

    # ---- Salidas -------------------------------------------------------------
    def _terminate(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._cancel_timers()
        st = self.state
        st.phase = Phase.terminated
        points, penalty = self.policy.compute_reward(st)
        points = max(0, int(points))
        st.reward = (points, bool(penalty))
        log.info("round %s (%s) terminated: points=%d penalty=%s",
                 self.session_id, self.policy.slug, points, bool(penalty))
        self._on_complete(points, bool(penalty))

    def cancel(self) -> bool:
        """Abandona la ronda sin puntaje. Las cargas en vuelo y los timers quedan sin efecto."""
        if self._closed:
            return False
        self._closed = True
        self._load_token += 1
        self._cancel_timers()
        self.state.phase = Phase.cancelled
        log.info("round %s (%s) cancelled", self.session_id, self.policy.slug)
        if self._on_cancel is not None:
            self._on_cancel()
        return True
