from typing import Iterable, List, Optional

from careerguide.core.models import JobMatch, Listing, MatchCriterion, StudentAcademicRecord
from careerguide.core.qualification import match_score

ACADEMIC = "Academic Performance"
SKILLS = "Skills Match"
EXPERIENCE = "Experience"
QUALIFICATIONS = "Qualifications"

WEIGHTS = {ACADEMIC: 0.4, SKILLS: 0.3, EXPERIENCE: 0.2, QUALIFICATIONS: 0.1}

MAX_GPA = 4.0


def _lower(values: Iterable[str]) -> List[str]:
    return [v.strip().lower() for v in values if isinstance(v, str) and v.strip()]


def _skill_matches(wanted: str, have: List[str]) -> bool:
    return any(wanted in s or s in wanted for s in have)


class JobMatcher:
    """
    Scores how well a student profile fits a job.

    Four weighted criteria: GPA 40%, skills 30%, experience 20% and
    qualifications 10%. A criterion only counts when both sides have data for
    it; the total is divided by the weights that were applied, so a job that
    lists no skills is not held against the student.
    """

    def __init__(self, good_match_threshold: int = 70):
        self.good_match_threshold = good_match_threshold

    def criteria(self, record: StudentAcademicRecord, job: Listing) -> List[MatchCriterion]:
        out: List[MatchCriterion] = []

        gpa = record.gpa
        if gpa is not None:
            out.append(MatchCriterion(
                ACADEMIC, min(gpa / MAX_GPA, 1.0), WEIGHTS[ACADEMIC], f"GPA: {gpa}/{MAX_GPA}",
            ))

        wanted = _lower(job.skills)
        if wanted:
            have = _lower(record.skills)
            matched = [w for w in wanted if _skill_matches(w, have)]
            out.append(MatchCriterion(
                SKILLS, len(matched) / len(wanted), WEIGHTS[SKILLS],
                f"Matched {len(matched)} of {len(wanted)} required skills",
            ))

        if job.experience and record.experience:
            ratio = min(record.experience / max(job.experience, 1.0), 1.0)
            out.append(MatchCriterion(
                EXPERIENCE, ratio, WEIGHTS[EXPERIENCE],
                f"{record.experience:g} years vs required {job.experience:g} years",
            ))

        job_quals = _lower(job.qualifications)
        student_quals = _lower(record.qualifications)
        if job_quals and student_quals:
            hit = any(q in s for q in job_quals for s in student_quals)
            out.append(MatchCriterion(
                QUALIFICATIONS, 1.0 if hit else 0.0, WEIGHTS[QUALIFICATIONS],
                "Holds a listed qualification" if hit else "No listed qualification",
            ))

        return out

    def match(self, record: StudentAcademicRecord, job: Listing) -> JobMatch:
        criteria = self.criteria(record, job)
        applied = sum(c.weight for c in criteria)
        if applied == 0:
            score = 0
        else:
            score = match_score(sum(c.score * c.weight for c in criteria), applied)
        return JobMatch(
            student_id=record.student_id,
            listing_id=job.id,
            score=score,
            is_good_match=score >= self.good_match_threshold,
            criteria=criteria,
        )

    def rank(self, record: StudentAcademicRecord, jobs: Iterable[Listing]) -> List[JobMatch]:
        """Matches for every job, best first; ties keep catalog order."""
        matches = [self.match(record, job) for job in jobs]
        return sorted(matches, key=lambda m: -m.score)

    def shortlist(
        self, records: Iterable[StudentAcademicRecord], job: Listing, threshold: Optional[int] = None
    ) -> List[JobMatch]:
        """Students with a verified transcript scoring at least `threshold`, best first."""
        floor = 60 if threshold is None else threshold
        matches = [
            self.match(r, job) for r in records
            if r.transcript is not None and r.transcript.verified
        ]
        return sorted((m for m in matches if m.score >= floor), key=lambda m: -m.score)
