"""Narrative progress summaries.

The statistics are reduced to a small payload, rendered into a prompt and
sent to the text-generation client. The reply is returned as-is.
"""
from __future__ import annotations
from typing import List, Optional

from pydantic import Field

from .claude_client import ClaudeClient
from .schemas import CamelModel, OverallStats
from .settings import settings


STRONG_THRESHOLD = 80
WEAK_THRESHOLD = 70
TOP_AREAS = 3


class ListPerformance(CamelModel):
	name: str
	accuracy: int
	stars: int = 0
	attempts: int = 0


class SummaryPayload(CamelModel):
	student_name: str
	overall_accuracy: int
	total_attempts: int
	total_stars: int
	lists_attempted: int
	list_performance: List[ListPerformance] = Field(default_factory=list)
	strong_areas: List[ListPerformance] = Field(default_factory=list)
	needs_improvement: List[ListPerformance] = Field(default_factory=list)


def build_summary_payload(student_name: str, stats: OverallStats) -> SummaryPayload:
	performance = [
		ListPerformance(name=s.name, accuracy=s.percentage, stars=s.stars, attempts=s.total)
		for s in stats.list_stats.values()
	]
	strong = sorted(
		(p for p in performance if p.accuracy >= STRONG_THRESHOLD),
		key=lambda p: p.accuracy,
		reverse=True,
	)
	weak = sorted(
		(p for p in performance if p.accuracy < WEAK_THRESHOLD),
		key=lambda p: p.accuracy,
	)
	return SummaryPayload(
		student_name=student_name,
		overall_accuracy=stats.overall_percentage,
		total_attempts=stats.total_attempts,
		total_stars=stats.total_stars,
		lists_attempted=len(stats.list_stats),
		list_performance=performance,
		strong_areas=strong[:TOP_AREAS],
		needs_improvement=weak[:TOP_AREAS],
	)


def _bullets(areas: List[ListPerformance]) -> str:
	if not areas:
		return "- (none)"
	return "\n".join(f"- {a.name}: {a.accuracy}%" for a in areas)


def build_summary_prompt(payload: SummaryPayload, language: Optional[str] = None) -> str:
	language = language or settings.summary_language
	return (
		f"You are an expert {language} language teacher analyzing a student's learning progress.\n\n"
		f"Student: {payload.student_name}\n"
		f"Overall Accuracy: {payload.overall_accuracy}%\n"
		f"Total Attempts: {payload.total_attempts}\n"
		f"Total Stars Earned: {payload.total_stars}\n"
		f"Lists Attempted: {payload.lists_attempted}\n\n"
		f"Strong Areas (>={STRONG_THRESHOLD}% accuracy):\n"
		f"{_bullets(payload.strong_areas)}\n\n"
		f"Needs Improvement (<{WEAK_THRESHOLD}% accuracy):\n"
		f"{_bullets(payload.needs_improvement)}\n\n"
		"Please provide a concise, encouraging analysis in this exact format:\n\n"
		"STRENGTHS:\n[2-3 bullet points about what this student is doing well]\n\n"
		"AREAS FOR IMPROVEMENT:\n[2-3 bullet points about specific challenges and why]\n\n"
		"ACTIONABLE RECOMMENDATIONS:\n[3-4 specific, practical tips to help the student improve]\n\n"
		"NEXT STEPS:\n[2-3 motivational next steps with specific focus areas]\n\n"
		"Keep the tone encouraging and constructive. Be specific to this student's actual performance data."
	)


async def generate_summary(client: ClaudeClient, payload: SummaryPayload) -> str:
	return await client.generate(build_summary_prompt(payload))
