"""Pygame UI shell for the Dot Count trainer.

The screen only renders DotCountGame.snapshot() and forwards input; all
timing, randomness, scoring and difficulty state lives in the core modules
(dot_count_trainer/dot_count.py and friends).
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .clock import RealClock
from .config import DOT_SIZE_STEP_PX, DotCountConfig, log_level_from_env
from .dot_core import (
    LEFT_BOUND_PCT,
    TOP_BOUND_PCT,
    ColorMode,
    DifficultyState,
    DotCountSnapshot,
    Shape,
    ShapeMode,
)
from .dot_count import DotCountGame, build_dot_count_game

logger = logging.getLogger(__name__)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

_SHAPE_CYCLE = tuple(ShapeMode)
_COLOR_CYCLE = tuple(ColorMode)


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the last/root screen; root handles its own quit/back behavior.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if self._items:
                self._items[self._selected].action()
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            if self._is_root:
                self._app.quit()
            else:
                self._app.pop()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        surface.fill((3, 9, 78))

        title = self._title_font.render(self._title, True, (238, 245, 255))
        surface.blit(title, title.get_rect(midtop=(w // 2, 32)))

        y = 120
        for idx, item in enumerate(self._items):
            selected = idx == self._selected
            row = pygame.Rect(w // 2 - 180, y, 360, 40)
            if selected:
                pygame.draw.rect(surface, (244, 248, 255), row)
            pygame.draw.rect(surface, (78, 102, 170), row, 1)
            color = (14, 26, 74) if selected else (238, 245, 255)
            text = self._item_font.render(item.label, True, color)
            surface.blit(text, text.get_rect(center=row.center))
            y += 52

        foot = self._hint_font.render("Enter/Space: Select  |  Esc: Back", True, (186, 200, 224))
        surface.blit(foot, foot.get_rect(midbottom=(w // 2, h - 12)))


class DotCountScreen:
    def __init__(self, app: App, *, engine_factory: Callable[[], DotCountGame]) -> None:
        self._app = app
        self._engine = engine_factory()
        self._input = ""

        self._small_font = pygame.font.Font(None, 24)
        self._tiny_font = pygame.font.Font(None, 18)
        self._mid_font = pygame.font.Font(None, 40)
        self._big_font = pygame.font.Font(None, 56)

        # Refreshed during render.
        self._candidate_hitboxes: list[tuple[pygame.Rect, int]] = []
        self._choice_hitboxes: list[tuple[pygame.Rect, str]] = []

    @property
    def engine(self) -> DotCountGame:
        return self._engine

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.MOUSEBUTTONDOWN and getattr(event, "button", 0) == 1:
            self._handle_click(getattr(event, "pos", (0, 0)))
            return
        if event.type != pygame.KEYDOWN:
            return

        key = event.key
        snap = self._engine.snapshot()

        if snap.difficulty_state is not DifficultyState.ACTIVE:
            if key == pygame.K_ESCAPE:
                self._engine.dismiss_choice()
                return
            idx = self._choice_from_key(key)
            if idx is not None and 1 <= idx <= len(snap.choice_options):
                self._engine.choose(snap.choice_options[idx - 1].choice)
            return

        if key == pygame.K_ESCAPE:
            self._engine.stop()
            self._app.pop()
            return
        if key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if not snap.running:
                self._engine.start_session()
            elif snap.guesses_enabled:
                self._engine.submit_answer(self._input)
            self._input = ""
            return
        if key == pygame.K_SPACE:
            self._engine.toggle_pause()
            return
        if key == pygame.K_r:
            self._input = ""
            self._engine.restart()
            return
        if key == pygame.K_BACKSPACE:
            self._input = self._input[:-1]
            return
        if self._handle_settings_key(key, snap):
            return

        ch = event.unicode
        if ch and ch.isdigit() and len(self._input) < 3:
            self._input += ch

    def _handle_settings_key(self, key: int, snap: DotCountSnapshot) -> bool:
        if key == pygame.K_F1:
            nxt = _SHAPE_CYCLE[(_SHAPE_CYCLE.index(snap.shape_mode) + 1) % len(_SHAPE_CYCLE)]
            self._engine.set_shape_mode(nxt)
        elif key == pygame.K_F2:
            nxt = _COLOR_CYCLE[(_COLOR_CYCLE.index(snap.color_mode) + 1) % len(_COLOR_CYCLE)]
            self._engine.set_color_mode(nxt)
        elif key in (pygame.K_EQUALS, pygame.K_PLUS, pygame.K_KP_PLUS):
            self._engine.step_level(1)
        elif key in (pygame.K_MINUS, pygame.K_KP_MINUS):
            self._engine.step_level(-1)
        elif key == pygame.K_UP:
            self._engine.set_time_limit(snap.time_limit_s + 1)
        elif key == pygame.K_DOWN:
            self._engine.set_time_limit(snap.time_limit_s - 1)
        elif key == pygame.K_RIGHT:
            self._engine.set_dot_size(snap.dot_size_px + DOT_SIZE_STEP_PX)
        elif key == pygame.K_LEFT:
            self._engine.set_dot_size(snap.dot_size_px - DOT_SIZE_STEP_PX)
        elif key == pygame.K_PAGEUP:
            self._engine.set_drift_speed(round(snap.drift_speed + 0.1, 1))
        elif key == pygame.K_PAGEDOWN:
            self._engine.set_drift_speed(round(snap.drift_speed - 0.1, 1))
        else:
            return False
        return True

    def _handle_click(self, pos: tuple[int, int]) -> None:
        for rect, choice in self._choice_hitboxes:
            if rect.collidepoint(pos):
                self._engine.choose(choice)
                return
        for rect, value in self._candidate_hitboxes:
            if rect.collidepoint(pos):
                self._engine.submit_guess(value)
                self._input = ""
                return

    def render(self, surface: pygame.Surface) -> None:
        self._engine.update()
        snap = self._engine.snapshot()

        w, h = surface.get_size()
        surface.fill((238, 240, 246))

        side_w = max(200, w // 4)
        play = pygame.Rect(side_w + 16, 52, w - side_w * 2 - 32, h - 120)
        self._render_header(surface, snap, play)
        self._render_settings(surface, snap, pygame.Rect(12, 52, side_w - 12, h - 64))
        self._render_play_area(surface, snap, play)
        self._render_candidates(surface, snap, pygame.Rect(w - side_w + 4, 52, side_w - 16, h - 64))

        msg = self._big_font.render(snap.message, True, (20, 20, 30))
        surface.blit(msg, msg.get_rect(midtop=(play.centerx, play.bottom + 10)))

        self._choice_hitboxes = []
        if snap.choice_options:
            self._render_choice_dialog(surface, snap)

    def _render_header(self, surface: pygame.Surface, snap: DotCountSnapshot, play: pygame.Rect) -> None:
        text = (
            f"Level: {snap.level}    Score: {snap.session_score}/{snap.session_total}"
            f"    Time left: {snap.time_remaining_s}s"
        )
        img = self._small_font.render(text, True, (20, 20, 30))
        surface.blit(img, (play.x, 18))
        streak = self._small_font.render(
            f"Correct: {snap.streak_correct}  Incorrect: {snap.streak_incorrect}",
            True,
            (60, 60, 80),
        )
        surface.blit(streak, streak.get_rect(topright=(play.right, 18)))

    def _render_settings(self, surface: pygame.Surface, snap: DotCountSnapshot, rect: pygame.Rect) -> None:
        drift = "Off" if snap.drift_speed == 0.0 else f"{snap.drift_speed:.2f}"
        lines = [
            f"Shape (F1): {snap.shape_mode.name.title()}",
            f"Colour (F2): {snap.color_mode.name.title()}",
            f"Dot size (L/R): {snap.dot_size_px}px",
            f"Time limit (U/D): {snap.time_limit_s}s",
            f"Level (-/+): {snap.level}",
            f"Min: {snap.min_dots}   Max: {snap.max_dots}",
            f"Drift (PgUp/PgDn): {drift}",
            "",
            "Enter: start / submit",
            "Space: pause / resume",
            "R: restart   Esc: back",
        ]
        y = rect.y
        for line in lines:
            surface.blit(self._tiny_font.render(line, True, (30, 30, 50)), (rect.x, y))
            y += 22

    def _render_play_area(self, surface: pygame.Surface, snap: DotCountSnapshot, play: pygame.Rect) -> None:
        pygame.draw.rect(surface, (255, 255, 255), play)
        pygame.draw.rect(surface, (0, 0, 0), play, 2)

        if not snap.running:
            lines = self._engine.instructions() + ["", "Press Enter to start."]
            y = play.y + 20
            for line in lines:
                img = self._small_font.render(line, True, (30, 30, 50))
                surface.blit(img, (play.x + 16, y))
                y += 26
            return

        size = max(4, min(snap.dot_size_px, play.w // 6, play.h // 6))
        for entity in snap.entities:
            x = play.x + int(play.w * min(entity.left, LEFT_BOUND_PCT) / 100.0)
            y = play.y + int(play.h * min(entity.top, TOP_BOUND_PCT) / 100.0)
            x = min(x, play.right - size)
            y = min(y, play.bottom - size)
            body = pygame.Rect(x, y, size, size)
            color = self._parse_color(entity.color)
            if entity.shape is Shape.SQUARE:
                pygame.draw.rect(surface, color, body)
                pygame.draw.rect(surface, (255, 255, 255), body, 2)
            else:
                pygame.draw.circle(surface, color, body.center, size // 2)
                pygame.draw.circle(surface, (255, 255, 255), body.center, size // 2, 2)

        if snap.paused and snap.difficulty_state is DifficultyState.ACTIVE:
            img = self._mid_font.render("PAUSED", True, (200, 30, 60))
            surface.blit(img, img.get_rect(center=play.center))

    def _render_candidates(self, surface: pygame.Surface, snap: DotCountSnapshot, rect: pygame.Rect) -> None:
        self._candidate_hitboxes = []
        label = "START" if not snap.running else ("RESUME" if snap.paused else "PAUSE")
        surface.blit(self._small_font.render(f"Space: {label}", True, (30, 30, 50)), (rect.x, rect.y))

        entry = self._mid_font.render(f"How many? {self._input}", True, (30, 30, 50))
        surface.blit(entry, (rect.x, rect.y + 30))

        col_w = (rect.w - 10) // 2
        row_h = 50
        for idx, value in enumerate(snap.candidates):
            col, row = idx % 2, idx // 2
            btn = pygame.Rect(rect.x + col * (col_w + 10), rect.y + 80 + row * (row_h + 10), col_w, row_h)
            chosen = snap.chosen == value
            bg = (48, 63, 159) if chosen else (63, 81, 181)
            if not snap.guesses_enabled and not chosen:
                bg = (150, 156, 190)
            pygame.draw.rect(surface, bg, btn, border_radius=4)
            if chosen:
                pygame.draw.rect(surface, (255, 214, 0), btn, 3, border_radius=4)
            img = self._mid_font.render(str(value), True, (255, 255, 255))
            surface.blit(img, img.get_rect(center=btn.center))
            self._candidate_hitboxes.append((btn, value))

    def _render_choice_dialog(self, surface: pygame.Surface, snap: DotCountSnapshot) -> None:
        w, h = surface.get_size()
        shade = pygame.Surface((w, h), pygame.SRCALPHA)
        shade.fill((0, 0, 0, 140))
        surface.blit(shade, (0, 0))

        box = pygame.Rect(0, 0, min(w - 40, 640), 200)
        box.center = (w // 2, h // 2)
        pygame.draw.rect(surface, (250, 250, 252), box, border_radius=6)

        if snap.difficulty_state is DifficultyState.AWAITING_PROMOTION_CHOICE:
            title, prompt = "Select Difficulty", "Choose your challenge: more dots, less time, or faster drifting?"
        else:
            title, prompt = "Adjust Difficulty", "Choose your challenge: down a level, more time, or slower drifting?"
        surface.blit(self._mid_font.render(title, True, (20, 20, 30)), (box.x + 20, box.y + 16))
        surface.blit(self._small_font.render(prompt, True, (40, 40, 60)), (box.x + 20, box.y + 64))

        n = max(1, len(snap.choice_options))
        btn_w = (box.w - 40 - 10 * (n - 1)) // n
        for idx, option in enumerate(snap.choice_options):
            btn = pygame.Rect(box.x + 20 + idx * (btn_w + 10), box.bottom - 70, btn_w, 48)
            bg = (63, 81, 181) if option.enabled else (190, 190, 200)
            pygame.draw.rect(surface, bg, btn, border_radius=4)
            img = self._small_font.render(f"{idx + 1}: {option.label}", True, (255, 255, 255))
            surface.blit(img, img.get_rect(center=btn.center))
            if option.enabled:
                self._choice_hitboxes.append((btn, option.choice))

        hint = self._tiny_font.render("Esc: keep current settings", True, (80, 80, 100))
        surface.blit(hint, (box.x + 20, box.bottom - 18))

    @staticmethod
    def _parse_color(value: str) -> pygame.Color:
        try:
            return pygame.Color(value)
        except ValueError:
            return pygame.Color("red")

    @staticmethod
    def _choice_from_key(key: int) -> int | None:
        mapping = {
            pygame.K_1: 1,
            pygame.K_2: 2,
            pygame.K_3: 3,
            pygame.K_KP1: 1,
            pygame.K_KP2: 2,
            pygame.K_KP3: 3,
        }
        return mapping.get(key)


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    logging.basicConfig(level=log_level_from_env())
    pygame.init()

    pygame.display.set_caption("Dot Count Trainer")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)
    real_clock = RealClock()
    config = DotCountConfig.from_env()

    def open_game() -> None:
        seed = _new_seed()
        logger.info("Opening dot count game (seed=%d)", seed)
        app.push(
            DotCountScreen(
                app,
                engine_factory=lambda: build_dot_count_game(clock=real_clock, seed=seed, config=config),
            )
        )

    main_items = [
        MenuItem("Dot Count", open_game),
        MenuItem("Quit", app.quit),
    ]
    app.push(MenuScreen(app, "Main Menu", main_items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
