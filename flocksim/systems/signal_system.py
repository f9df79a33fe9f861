from typing import List
from flocksim.domain.models import TrafficLight, SignalState
from flocksim.domain import config

class SignalSystem:
    def update(self, lights: List[TrafficLight], dt: float):
        for light in lights:
            light.timer -= dt
            if light.timer <= 0:
                self._switch_signal_phase(light)

    def _switch_signal_phase(self, light: TrafficLight):
        # Cycle: GREEN -> YELLOW -> RED -> GREEN, half the cycle each side
        half_cycle = light.cycle_duration / 2
        if light.state == SignalState.GREEN:
            light.state = SignalState.YELLOW
            light.timer += config.YELLOW_TIME
        elif light.state == SignalState.YELLOW:
            light.state = SignalState.RED
            light.timer += half_cycle
        else:
            light.state = SignalState.GREEN
            light.timer += max(half_cycle - config.YELLOW_TIME, 0.0)

    @staticmethod
    def is_stop_signal(light: TrafficLight) -> bool:
        return light.state in [SignalState.RED, SignalState.YELLOW]
