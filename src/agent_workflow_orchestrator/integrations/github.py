"""In-process GitHub integration.

This wraps PyGithub so integration nodes can create issues and pull requests
or read repository activity. Results are plain JSON-friendly dicts so they can
be stored in workflow variables and execution records.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from itertools import islice
from typing import Any

from github import Auth, Github
from github.Repository import Repository

logger = logging.getLogger(__name__)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _str_list(value: object) -> list[str]:
    if isinstance(value, str):
        return [p.strip() for p in value.split(",") if p.strip()]
    if isinstance(value, list):
        return [str(v) for v in value if str(v).strip()]
    return []


def _limit(params: dict[str, Any], default: int = 10) -> int:
    raw = params.get("limit", default)
    try:
        return max(1, int(raw))
    except (TypeError, ValueError):
        return default


def _take(items: Iterable[Any], limit: int) -> list[Any]:
    return list(islice(items, limit))


class GitHubIntegration:
    """Actions: create_issue, list_issues, create_pr, get_commits, get_repos."""

    def __init__(
        self,
        *,
        token: str,
        base_url: str = "https://api.github.com",
        github_api: Github | None = None,
    ) -> None:
        if github_api is None and not token:
            raise ValueError("GitHub token is required")
        self._github = github_api or Github(auth=Auth.Token(token), base_url=base_url)
        self._actions: dict[str, Callable[[dict[str, Any]], Any]] = {
            "create_issue": self.create_issue,
            "list_issues": self.list_issues,
            "create_pr": self.create_pull_request,
            "get_commits": self.get_commits,
            "get_repos": self.get_repositories,
        }

    def execute(self, action: str, params: dict[str, Any], context: dict[str, Any]) -> Any:
        handler = self._actions.get(action)
        if handler is None:
            raise ValueError(f"Unknown action: {action}")
        logger.info(
            "Running GitHub action",
            extra={"action": action, "execution_id": context.get("execution_id")},
        )
        return handler(params or {})

    def _repo(self, params: dict[str, Any]) -> Repository:
        owner = str(params.get("owner") or "").strip()
        repo = str(params.get("repo") or "").strip()
        if not owner or not repo:
            raise ValueError("owner and repo are required")
        return self._github.get_repo(f"{owner}/{repo}")

    def create_issue(self, params: dict[str, Any]) -> dict[str, Any]:
        title = str(params.get("title") or "").strip()
        if not title:
            raise ValueError("title is required")
        repo = self._repo(params)
        kwargs: dict[str, Any] = {"title": title, "body": str(params.get("body") or "")}
        labels = _str_list(params.get("labels"))
        if labels:
            kwargs["labels"] = labels
        assignees = _str_list(params.get("assignees"))
        if assignees:
            kwargs["assignees"] = assignees

        issue = repo.create_issue(**kwargs)
        return {
            "number": issue.number,
            "title": issue.title,
            "state": issue.state,
            "html_url": issue.html_url,
            "created_at": _iso(issue.created_at),
            "repository": repo.full_name,
        }

    def list_issues(self, params: dict[str, Any]) -> dict[str, Any]:
        repo = self._repo(params)
        kwargs: dict[str, Any] = {"state": str(params.get("state") or "open")}
        labels = _str_list(params.get("labels"))
        if labels:
            kwargs["labels"] = labels

        issues = [
            {
                "number": issue.number,
                "title": issue.title,
                "state": issue.state,
                "labels": [label.name for label in issue.labels],
                "created_at": _iso(issue.created_at),
                "html_url": issue.html_url,
            }
            for issue in _take(repo.get_issues(**kwargs), _limit(params))
        ]
        return {"issues": issues, "total": len(issues), "repository": repo.full_name}

    def create_pull_request(self, params: dict[str, Any]) -> dict[str, Any]:
        title = str(params.get("title") or "").strip()
        head = str(params.get("head") or "").strip()
        if not title or not head:
            raise ValueError("title and head are required")
        repo = self._repo(params)
        base = str(params.get("base") or "main")

        pr = repo.create_pull(title=title, body=str(params.get("body") or ""), head=head, base=base)
        return {
            "number": pr.number,
            "title": pr.title,
            "state": pr.state,
            "head": head,
            "base": base,
            "html_url": pr.html_url,
            "created_at": _iso(pr.created_at),
        }

    def get_commits(self, params: dict[str, Any]) -> dict[str, Any]:
        repo = self._repo(params)
        branch = str(params.get("branch") or "main")

        commits = [
            {
                "sha": commit.sha,
                "message": commit.commit.message,
                "author": commit.commit.author.name if commit.commit.author else None,
                "date": _iso(commit.commit.author.date) if commit.commit.author else None,
                "html_url": commit.html_url,
            }
            for commit in _take(repo.get_commits(sha=branch), _limit(params))
        ]
        return {
            "commits": commits,
            "total": len(commits),
            "repository": repo.full_name,
            "branch": branch,
        }

    def get_repositories(self, params: dict[str, Any]) -> dict[str, Any]:
        org = str(params.get("org") or "").strip()
        user = str(params.get("user") or "").strip()
        repo_type = str(params.get("type") or "all")

        if org:
            source = self._github.get_organization(org).get_repos(type=repo_type)
        elif user:
            source = self._github.get_user(user).get_repos(type=repo_type)
        else:
            source = self._github.get_user().get_repos()

        repos = [
            {
                "name": repo.name,
                "full_name": repo.full_name,
                "private": repo.private,
                "description": repo.description,
                "html_url": repo.html_url,
            }
            for repo in _take(source, _limit(params))
        ]
        return {"repositories": repos, "total": len(repos)}

    def close(self) -> None:
        self._github.close()
