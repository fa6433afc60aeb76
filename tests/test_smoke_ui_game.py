from __future__ import annotations

import os


def _key(pygame, key: int, unicode: str = "") -> None:
    pygame.event.post(pygame.event.Event(pygame.KEYDOWN, {"key": key, "unicode": unicode}))


def test_ui_smoke_open_dot_count_and_play_a_round() -> None:
    # Headless SDL for CI.
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

    import pygame

    from dot_count_trainer.app import run

    def inject(frame: int) -> None:
        # Main Menu -> Dot Count -> start -> type an answer -> submit -> settings -> pause -> back
        if frame == 1:
            _key(pygame, pygame.K_RETURN)
        elif frame == 2:
            _key(pygame, pygame.K_RETURN)
        elif frame == 3:
            _key(pygame, pygame.K_4, "4")
        elif frame == 4:
            _key(pygame, pygame.K_RETURN)
        elif frame == 5:
            _key(pygame, pygame.K_F1)
            _key(pygame, pygame.K_F2)
            _key(pygame, pygame.K_PAGEUP)
        elif frame == 6:
            _key(pygame, pygame.K_SPACE)
        elif frame == 7:
            _key(pygame, pygame.K_ESCAPE)

    assert run(max_frames=12, event_injector=inject) == 0
