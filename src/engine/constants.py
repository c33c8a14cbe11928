"""
Engine constants.

Thresholds and lookup tables shared by the classifier, pool distributor,
DNA analyzer and feedback updater. Anything an operator is expected to
tune lives in config.py instead.
"""
from __future__ import annotations

# =============================================================================
# Profile defaults
# =============================================================================

USER_DEFAULTS = {
    "initial_skill_level": 0.3,
    "initial_max_difficulty": 0.4,
    "initial_preferred_difficulty": 0.3,
    "initial_level": 1,
    "cognitive_default": 0.5,
    "preference_default": 0.5,
}

# Bound on the skill history kept for progression metrics
SKILL_HISTORY_SIZE = 50

# =============================================================================
# State classification
# =============================================================================

CLASSIFIER_THRESHOLDS = {
    "recent_window": 5,
    "severe_success_rate": 0.3,
    "struggling_success_rate": 0.5,
    "struggling_momentum": -0.2,
    "falling_back_momentum": -0.1,
    "falling_back_decline": 0.1,
    "expert_success_rate": 0.9,
    "expert_momentum": 0.15,
    "expert_engagement_ceiling": 0.6,
    "excelling_success_rate": 0.8,
    "excelling_momentum": 0.1,
    "progressing_success_rate": 0.6,
}

MODIFIER_THRESHOLDS = {
    "crisis_consecutive_failures": 3,
    "disengaged_engagement": 0.4,
    "expert_boredom_engagement": 0.5,
    "power_up_dependency": 0.5,
    "fatigue_minutes": 20,
    "fatigue_accuracy_drop": 0.1,
    "fatigue_hard_limit_minutes": 30,
    "session_decline": 0.1,
}

# =============================================================================
# Pool distribution
# =============================================================================

# Order: confidence, skill, challenge, recovery, exploratory
BASE_POOL_DISTRIBUTIONS: dict[str, tuple[int, int, int, int, int]] = {
    "new_user": (7, 2, 1, 0, 0),
    "severely_struggling": (6, 2, 0, 2, 0),
    "struggling": (4, 3, 1, 2, 0),
    "falling_back": (5, 2, 1, 2, 0),
    "stable": (2, 4, 3, 0, 1),
    "progressing": (2, 3, 4, 0, 1),
    "excelling": (1, 2, 4, 0, 3),
    "expert_demanding": (0, 1, 7, 0, 2),
}

BASE_POOL_SIZE = 10

MODIFIER_ADJUSTMENTS: dict[str, tuple[int, int, int, int, int]] = {
    "confidence_crisis": (2, 0, -2, 0, 0),
    "disengaged": (0, -1, 0, 2, -1),
    "power_dependent": (1, 0, 0, 0, -1),
    "fatigued": (1, 0, -2, 1, 0),
    "session_decline": (0, -1, 0, 1, 0),
}

# States whose base shares are kept as-is
PROTECTED_STATES = frozenset({"new_user", "expert_demanding"})

PRE_VIRAL_ADJUSTMENT = (3, 0, -2, 0, 0)
STRENGTH_FOCUS_ADJUSTMENT = (2, -1, 0, 0, 0)

# =============================================================================
# Candidate targeting
# =============================================================================

CATEGORY_DIFFICULTY_OFFSETS = {
    "confidence_builders": -0.15,
    "skill_development": 0.0,
    "progressive_challenge": 0.15,
    "engagement_recovery": -0.1,
    "exploratory_new": 0.0,
}

MIN_TARGET_DIFFICULTY = 0.05
MAX_TARGET_DIFFICULTY = 0.95

# Gradual progression over a learner's first puzzles (opt-in ceiling)
PROGRESSION = {
    "span_puzzles": 50,
    "start_cap": 0.25,
    "end_cap": 0.65,
    "recent_window": 5,
    "performance_pivot": 0.6,
    "performance_scale": 0.25,
    "early_ratio": 0.3,
    "early_cap": 0.32,
    "very_new_puzzles": 5,
    "very_new_cap": 0.25,
}

# =============================================================================
# Puzzle DNA
# =============================================================================

DNA_WEIGHTS = {
    "base": 0.3,
    "element_count": 0.1,
    "color_variety": 0.1,
    "visual_noise": 0.05,
    "rule_depth": 0.15,
    "sophistication": 0.1,
    "abstraction": 0.08,
    "solve_time": 0.05,
    "error_proneness": 0.05,
    "multi_step_bonus": 0.05,
    "high_memory_bonus": 0.08,
    "medium_memory_bonus": 0.03,
}

DNA_NORMALIZERS = {
    "element_count": 20,
    "color_variety": 20,
    "rule_depth": 5,
    "solve_time_ms": 60000,
}

MEMORY_THRESHOLDS = {"high": 15, "medium": 8}

TIMING = {
    "base_solve_ms": 5000,
    "per_element_ms": 200,
    "per_rule_depth_ms": 3000,
    "per_unique_element_ms": 500,
    "max_solve_ms": 60000,
}

# Weight of the static estimate when blending with the declared tier
DNA_STATIC_BLEND = 0.5

DNA_LEARNING = {
    "new_weight": 0.7,
    "prior_weight": 0.3,
    "confidence_saturation": 10,
}

# =============================================================================
# Feedback
# =============================================================================

FEEDBACK = {
    "momentum_window": 10,
    "momentum_decay": 0.8,
    "momentum_engagement_bonus": 0.1,
    "velocity_window": 5,
    "data_confidence_saturation": 10,
    "skill_step": 0.05,
    "skill_penalty_step": 0.03,
    "correct_per_level": 10,
    "max_difficulty_cap": 0.9,
    "max_difficulty_margin": 0.2,
    "preferred_difficulty_alpha": 0.2,
    "profile_engagement_retain": 0.9,
    "session_engagement_retain": 0.8,
    "cognitive_step": 0.05,
    "fast_response_ms": 5000,
    "slow_response_ms": 30000,
    "preference_accuracy_weight": 0.8,
    "preference_time_weight": 0.2,
    "preference_engagement_blend": 0.3,
    "flow_min_puzzles": 3,
    "flow_accuracy_low": 0.6,
    "flow_accuracy_high": 0.9,
    "flow_engagement": 0.6,
}
