"""
Simulated learner personas for exercising the engine end-to-end.
"""
from src.simulation.personas import PERSONAS, Persona, SimulationStep, get_persona, simulate

__all__ = [
    "PERSONAS",
    "Persona",
    "SimulationStep",
    "get_persona",
    "simulate",
]
