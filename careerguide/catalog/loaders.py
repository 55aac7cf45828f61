import json
import os
from typing import Any, Dict, List


def _read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_courses(root: str) -> List[Dict[str, Any]]:
    return _read_json(os.path.join(root, "courses.json"))


def load_jobs(root: str) -> List[Dict[str, Any]]:
    return _read_json(os.path.join(root, "jobs.json"))


def load_students(root: str) -> List[Dict[str, Any]]:
    return _read_json(os.path.join(root, "students.json"))


def load_policy(root: str) -> Dict[str, Any]:
    path = os.path.join(root, "policy.json")
    if not os.path.exists(path):
        return {}
    return _read_json(path)


def load_applications(root: str) -> List[Dict[str, Any]]:
    path = os.path.join(root, "applications.json")
    if not os.path.exists(path):
        return []
    return _read_json(path)
