from typing import Any, Dict, Optional


class AdmissionPolicy:
    """
    Platform-wide admission settings, read from policy.json:

    - max_applications_per_institution: applications a student may hold at one
      institution (or company), whatever their status. Default 2.
    - cascade_on_accept: when true, accepting one admission withdraws the
      student's other pending/admitted/waitlisted applications. Default false.
    - application_number_prefix: used when an institution has no code of its own.
    - good_match_threshold: job match score (0-100) a student sees flagged as a
      good match. Default 70.
    - applicant_match_threshold: job match score a company needs to see a
      student among its qualified applicants. Default 60.
    """

    def __init__(self, policy_cfg: Optional[Dict[str, Any]] = None):
        cfg = policy_cfg or {}
        self.cfg = cfg
        self.max_applications_per_institution = int(cfg.get("max_applications_per_institution", 2))
        self.cascade_on_accept = bool(cfg.get("cascade_on_accept", False))
        self.application_number_prefix = str(cfg.get("application_number_prefix", "INST"))
        self.institution_codes: Dict[str, str] = dict(cfg.get("institution_codes", {}))
        self.good_match_threshold = int(cfg.get("good_match_threshold", 70))
        self.applicant_match_threshold = int(cfg.get("applicant_match_threshold", 60))

        if self.max_applications_per_institution < 1:
            raise ValueError("max_applications_per_institution must be at least 1")

    def institution_code(self, institution_id: str) -> str:
        return self.institution_codes.get(institution_id, self.application_number_prefix)
