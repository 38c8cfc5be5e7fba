"""Level badges and rule-based feedback for the analytics page.

These read a finished ``OverallStats``; the aggregator knows nothing about
them.
"""
from __future__ import annotations
from typing import List, Optional

from pydantic import Field

from .schemas import CamelModel, OverallStats


INTERMEDIATE_THRESHOLD = 70
ADVANCED_THRESHOLD = 85


class LevelInfo(CamelModel):
	level: str
	title: str
	points_to_next_level: Optional[int] = None
	next_level: Optional[str] = None


class Feedback(CamelModel):
	strengths: List[str] = Field(default_factory=list)
	areas_for_improvement: List[str] = Field(default_factory=list)
	recommendations: List[str] = Field(default_factory=list)


RECOMMENDATIONS: List[str] = [
	"Practice syllable breakdown for words with errors",
	"Use the pronunciation feature to improve listening skills",
	"Review incorrect answers and try again",
	"Set a goal to earn more stars in the next session",
]


def points_to_next_level(percentage: int) -> Optional[int]:
	if percentage >= ADVANCED_THRESHOLD:
		return None
	if percentage >= INTERMEDIATE_THRESHOLD:
		return ADVANCED_THRESHOLD - percentage
	return INTERMEDIATE_THRESHOLD - percentage


def level_for(percentage: int) -> LevelInfo:
	if percentage >= ADVANCED_THRESHOLD:
		return LevelInfo(level="Advanced", title="Advanced Learner")
	if percentage >= INTERMEDIATE_THRESHOLD:
		return LevelInfo(
			level="Intermediate",
			title="Progressing Well",
			points_to_next_level=points_to_next_level(percentage),
			next_level="Advanced",
		)
	return LevelInfo(
		level="Beginner",
		title="Getting Started",
		points_to_next_level=points_to_next_level(percentage),
		next_level="Intermediate",
	)


def build_feedback(stats: OverallStats) -> Feedback:
	lists = list(stats.list_stats.values())
	feedback = Feedback(recommendations=list(RECOMMENDATIONS))

	if stats.overall_percentage >= 80:
		feedback.strengths.append(
			f"Excellent overall performance with {stats.overall_percentage}% accuracy"
		)
	if stats.total_attempts >= 10:
		feedback.strengths.append(
			f"Consistent engagement with {stats.total_attempts} attempts across lessons"
		)
	mastered = [l for l in lists if l.percentage == 100]
	if mastered:
		feedback.strengths.append(f"Mastered {len(mastered)} vocabulary list(s) perfectly")
	if stats.total_stars >= 20:
		feedback.strengths.append(
			f"Earned {stats.total_stars} stars, showing dedication to learning"
		)

	if stats.overall_percentage < INTERMEDIATE_THRESHOLD:
		feedback.areas_for_improvement.append(
			f"Focus on improving accuracy - current rate is {stats.overall_percentage}%"
		)
	challenging = [l.name for l in lists if l.percentage < 50]
	if challenging:
		feedback.areas_for_improvement.append(
			"Review the following challenging lists: " + ", ".join(challenging)
		)
	if stats.total_attempts < 5:
		feedback.areas_for_improvement.append("Increase practice attempts to reinforce learning")
	if any(80 <= l.percentage < 100 for l in lists):
		feedback.areas_for_improvement.append("Push toward mastery in partially learned lists")

	return feedback
