import logging
from collections import deque
from dataclasses import dataclass

import numpy as np
import pygame

from .config import MAX_SPEED
from .naive import step

logger = logging.getLogger(__name__)

YELLOW = (255, 255, 0)
BLUE = (0, 0, 255)
RED = (255, 0, 0)
GREEN = (0, 128, 0)
PURPLE = (128, 0, 128)
WHITE = (255, 255, 255)
BODY_COLORS = [YELLOW, BLUE, RED, GREEN]
MAX_PIXEL = 2 ** 30


def world_to_screen(pos, screen_width, screen_height, scale, center):
    x = int(screen_width / 2 + (pos[0] - center[0]) * scale)
    y = int(screen_height / 2 - (pos[1] - center[1]) * scale)
    return x, y


def on_canvas(pos, screen_width, screen_height, scale, center):
    """True when `pos` maps to a drawable pixel; nan, inf and far-off points do not."""
    if not np.all(np.isfinite(pos)):
        return False
    limit = MAX_PIXEL - max(screen_width, screen_height)
    with np.errstate(over="ignore"):
        return bool(np.all(np.abs((np.asarray(pos) - center) * scale) < limit))


def body_color(index):
    return BODY_COLORS[index] if index < len(BODY_COLORS) else PURPLE


def body_radius(mass):
    return int(min(12, max(2, np.sqrt(mass) * 2)))


class Trails:
    """Most recent positions of every body, oldest first."""

    def __init__(self, n_bodies, trail_length=500):
        self.trail_length = trail_length
        self.points = [deque(maxlen=trail_length) for _ in range(n_bodies)]

    def record(self, bodies):
        for trail, body in zip(self.points, bodies):
            trail.append(np.array([body.position.x, body.position.y]))

    def __len__(self):
        return len(self.points)

    def __getitem__(self, i):
        return self.points[i]


@dataclass
class ViewState:
    """Presentation-only controls; never touches the physics state."""
    scale: float = 40.0
    speed: int = 1

    def faster(self):
        self.speed = min(self.speed + 1, MAX_SPEED)

    def slower(self):
        self.speed = max(self.speed - 1, 1)

    def zoom_in(self):
        self.scale *= 1.05

    def zoom_out(self):
        self.scale *= 0.95


def handle_keys(pressed, view):
    if pressed[pygame.K_UP]:
        view.faster()
    if pressed[pygame.K_DOWN]:
        view.slower()
    if pressed[pygame.K_RIGHT]:
        view.zoom_in()
    if pressed[pygame.K_LEFT]:
        view.zoom_out()


def draw(screen, bodies, trails, view, font, step_count):
    width, height = screen.get_size()
    center = np.zeros(2)

    screen.fill((0, 0, 0))

    # trails, fading towards the oldest point
    for i in range(len(trails)):
        if len(trails[i]) < 2:
            continue
        color = body_color(i)
        points = [world_to_screen(p, width, height, view.scale, center)
                  for p in trails[i] if on_canvas(p, width, height, view.scale, center)]
        for j in range(1, len(points)):
            alpha = j / len(points) * 0.8
            pygame.draw.line(screen, tuple(int(c * alpha) for c in color), points[j - 1], points[j], 1)

    for i, body in enumerate(bodies):
        pos = (body.position.x, body.position.y)
        if not on_canvas(pos, width, height, view.scale, center):
            continue
        screen_pos = world_to_screen(pos, width, height, view.scale, center)
        pygame.draw.circle(screen, body_color(i), screen_pos, body_radius(body.mass))

    info_lines = [
        f"Speed: {view.speed}x",
        f"Step: {step_count}",
    ]
    for i, line in enumerate(info_lines):
        screen.blit(font.render(line, True, WHITE), (10, 10 + i * 18))
    controls = font.render("Controls: Arrow Keys (Up/Down=Speed, Left/Right=Zoom)", True, WHITE)
    screen.blit(controls, (10, height - 26))


def simulate_pygame(bodies, config, title="N-Body Simulation"):
    pygame.init()
    screen = pygame.display.set_mode((config.view.width, config.view.height))
    pygame.display.set_caption(title)
    clock = pygame.time.Clock()
    font = pygame.font.SysFont("Arial", 16)

    view = ViewState(scale=config.view.scale, speed=config.view.speed)
    trails = Trails(len(bodies), config.view.trail_length)
    step_count = 0
    logger.info("Visualizer started: %d bodies, scale=%g, speed=%d", len(bodies), view.scale, view.speed)

    running = True
    while running:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                running = False
        handle_keys(pygame.key.get_pressed(), view)

        for _ in range(view.speed):
            bodies = step(bodies, G=config.G, dt=config.dt, epsilon=config.epsilon)
        step_count += view.speed
        trails.record(bodies)

        draw(screen, bodies, trails, view, font, step_count)
        pygame.display.flip()
        clock.tick(60)  # 60 FPS

    logger.info("Visualizer stopped after %d steps", step_count)
    pygame.quit()
    return bodies
