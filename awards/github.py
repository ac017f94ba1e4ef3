"""
GitHub module for the Award Deadlines Board.

This module opens a review pull request for each newly submitted award:
- Creates a submission branch from the base branch head
- Commits the updated awards.json to that branch
- Opens the pull request and labels it for review

Uses the GitHub REST API with proper error handling for rate limits and
validation errors.
"""

import base64
import time
from typing import Any, Dict, List, Optional, Tuple

import requests

from awards.models import AwardRecord
from awards.utils import get_env_var, get_logger


# Module logger
logger = get_logger("github")

# GitHub API configuration
GITHUB_API_BASE = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
REQUEST_TIMEOUT = 30

# Rate limit retry configuration
MAX_RATE_LIMIT_RETRIES = 3
RATE_LIMIT_WAIT_SECONDS = 60

BRANCH_PREFIX = "submissions/award-"
PR_LABELS = ["new-award", "needs-review"]


class GitHubAPIError(Exception):
    """Custom exception for GitHub API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, response: Optional[Dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


def get_github_credentials() -> Tuple[str, str]:
    """
    Get GitHub credentials from environment variables.

    Returns:
        Tuple of (github_token, github_repository).

    Raises:
        ValueError: If required environment variables are not set.
    """
    token = get_env_var("GITHUB_TOKEN", required=True)
    repository = get_env_var("GITHUB_REPOSITORY", required=True)

    assert token is not None
    assert repository is not None

    return token, repository


def parse_repository(repository: str) -> Tuple[str, str]:
    """
    Parse repository string into owner and repo name.

    Args:
        repository: Repository string in format "owner/repo".

    Returns:
        Tuple of (owner, repo_name).

    Raises:
        ValueError: If repository format is invalid.
    """
    parts = repository.split("/", 1)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"Invalid repository format: {repository}. Expected 'owner/repo'")

    return parts[0], parts[1]


def create_github_session(token: str) -> requests.Session:
    """
    Create a requests session configured for GitHub API.

    Args:
        token: GitHub personal access token.

    Returns:
        Configured requests.Session instance.
    """
    session = requests.Session()
    session.headers.update({
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
        "User-Agent": "AwardDeadlinesBot/2.0"
    })
    return session


def check_rate_limit(response: requests.Response) -> Tuple[bool, int]:
    """
    Check if response indicates rate limiting.

    Args:
        response: Response object from GitHub API.

    Returns:
        Tuple of (is_rate_limited, seconds_until_reset).
    """
    if response.status_code != 403:
        return False, 0

    remaining = response.headers.get("X-RateLimit-Remaining", "1")
    reset_time = response.headers.get("X-RateLimit-Reset", "0")

    if remaining == "0":
        try:
            reset_timestamp = int(reset_time)
            wait_seconds = max(0, reset_timestamp - int(time.time()))
            return True, wait_seconds
        except ValueError:
            return True, RATE_LIMIT_WAIT_SECONDS

    try:
        data = response.json()
    except ValueError:
        return False, 0

    if isinstance(data, dict) and "rate limit" in str(data.get("message", "")).lower():
        return True, RATE_LIMIT_WAIT_SECONDS

    return False, 0


def _error_for_response(response: requests.Response, what: str) -> GitHubAPIError:
    status = response.status_code

    if status == 401:
        return GitHubAPIError("GitHub authentication failed. Check GITHUB_TOKEN.", status_code=401)

    if status == 403:
        return GitHubAPIError(
            f"GitHub permission denied while trying to {what}. "
            "Token may lack 'contents' or 'pull_requests' scope.",
            status_code=403
        )

    if status == 404:
        return GitHubAPIError(f"Not found while trying to {what}.", status_code=404)

    if status == 422:
        try:
            error_data = response.json()
        except ValueError:
            return GitHubAPIError("GitHub validation error", status_code=422)
        message = error_data.get("message", "Validation failed")
        errors = error_data.get("errors", [])
        error_details = "; ".join(
            e.get("message", str(e)) if isinstance(e, dict) else str(e) for e in errors
        ) if errors else ""
        return GitHubAPIError(
            f"GitHub validation error: {message}. {error_details}".strip(),
            status_code=422,
            response=error_data
        )

    return GitHubAPIError(f"GitHub API error: HTTP {status}", status_code=status)


def github_request(
    session: requests.Session,
    method: str,
    url: str,
    what: str,
    expected: Tuple[int, ...] = (200,),
    payload: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Send one GitHub API request with rate-limit and timeout retries.

    Args:
        session: Configured requests session.
        method: HTTP method.
        url: Full API URL.
        what: Short description of the operation, used in errors.
        expected: Status codes that count as success.
        payload: Optional JSON body.

    Returns:
        Decoded JSON response (empty dict for an empty body).

    Raises:
        GitHubAPIError: If the request fails or returns an unexpected status.
    """
    for attempt in range(MAX_RATE_LIMIT_RETRIES):
        try:
            response = session.request(method, url, json=payload, timeout=REQUEST_TIMEOUT)

            is_limited, wait_time = check_rate_limit(response)
            if is_limited:
                if attempt < MAX_RATE_LIMIT_RETRIES - 1:
                    logger.warning(f"Rate limited, waiting {wait_time}s (attempt {attempt + 1})")
                    time.sleep(min(wait_time, RATE_LIMIT_WAIT_SECONDS))
                    continue
                raise GitHubAPIError("GitHub API rate limit exceeded", status_code=403)

            if response.status_code in expected:
                if not response.content:
                    return {}
                return response.json()

            raise _error_for_response(response, what)

        except requests.exceptions.Timeout:
            if attempt < MAX_RATE_LIMIT_RETRIES - 1:
                logger.warning(f"Request timeout, retrying (attempt {attempt + 1})")
                time.sleep(5)
                continue
            raise GitHubAPIError(f"GitHub API request timeout while trying to {what}")

        except requests.exceptions.RequestException as e:
            raise GitHubAPIError(f"GitHub API request failed: {e}")

    raise GitHubAPIError(f"Failed to {what} after retries")


def branch_name_for(award: AwardRecord) -> str:
    """Submission branch for an award, e.g. "submissions/award-1a2b3c4d"."""
    return f"{BRANCH_PREFIX}{award.id[:8]}"


def format_commit_message(award: AwardRecord) -> str:
    return f"Add award: {award.title}"


def format_pr_title(award: AwardRecord) -> str:
    return f"New Award: {award.title}"


def format_pr_body(award: AwardRecord) -> str:
    """
    Format the pull request body for reviewers.

    Args:
        award: The submitted award.

    Returns:
        Markdown body with the award details and a review checklist.
    """
    lines = [
        "## New Award Submission",
        "",
        f"**Title:** {award.title}",
        f"**Level:** {award.level}",
        f"**Final Deadline:** {award.deadline_month} {award.deadline_day}",
    ]

    if award.internal_deadline:
        lines.append(f"**Internal Deadline:** {award.internal_deadline}")

    lines.extend([
        "",
        "### Details",
        f"- **Application Mode:** {award.application_mode}",
        f"- **Award For:** {award.award_for}",
        f"- **Type:** {award.type}",
        f"- **Link:** [View Award]({award.link})",
        "",
        "### Requirements",
        award.requirements or "N/A",
        "",
        "### Previous Awardees",
        award.previous_awardees or "N/A",
        "",
        "---",
        "",
        "### Review Checklist",
        "- [ ] Award information is accurate",
        "- [ ] No duplicate entries",
        "- [ ] Deadlines are correct",
        "- [ ] Link is valid and accessible",
        "- [ ] Requirements are complete",
        "",
        "---",
        "*Automated submission from the award submission form*",
        f"*Award ID: {award.id}*",
    ])

    return "\n".join(lines)


class GitHubPublisher:
    """
    Publishes awards as review pull requests against one repository.

    Attributes:
        owner: Repository owner.
        repo: Repository name.
        base_branch: Branch the pull requests target.
        file_path: Repository path of awards.json.
    """

    def __init__(
        self,
        session: requests.Session,
        owner: str,
        repo: str,
        base_branch: str = "main",
        file_path: str = "docs/data/awards.json"
    ):
        self.session = session
        self.owner = owner
        self.repo = repo
        self.base_branch = base_branch
        self.file_path = file_path.lstrip("/")

    @classmethod
    def from_environment(cls, base_branch: str = "main", file_path: str = "docs/data/awards.json") -> "GitHubPublisher":
        """
        Build a publisher from GITHUB_TOKEN and GITHUB_REPOSITORY.

        Raises:
            ValueError: If the credentials are missing or malformed.
        """
        token, repository = get_github_credentials()
        owner, repo = parse_repository(repository)
        return cls(create_github_session(token), owner, repo, base_branch, file_path)

    @property
    def _repo_url(self) -> str:
        return f"{GITHUB_API_BASE}/repos/{self.owner}/{self.repo}"

    def get_ref_sha(self, branch: str) -> str:
        data = github_request(
            self.session, "GET", f"{self._repo_url}/git/ref/heads/{branch}",
            what=f"read branch {branch}"
        )
        return data["object"]["sha"]

    def create_branch(self, branch: str, sha: str) -> None:
        github_request(
            self.session, "POST", f"{self._repo_url}/git/refs",
            what=f"create branch {branch}",
            expected=(201,),
            payload={"ref": f"refs/heads/{branch}", "sha": sha}
        )
        logger.info(f"Created branch: {branch}")

    def get_file_sha(self, ref: str) -> Optional[str]:
        """Blob sha of awards.json on a ref, or None if the file does not exist there."""
        try:
            data = github_request(
                self.session, "GET", f"{self._repo_url}/contents/{self.file_path}?ref={ref}",
                what=f"read {self.file_path}"
            )
        except GitHubAPIError as e:
            if e.status_code == 404:
                return None
            raise
        return data.get("sha")

    def update_file(self, branch: str, content: str, message: str, sha: Optional[str]) -> None:
        payload: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha:
            payload["sha"] = sha

        github_request(
            self.session, "PUT", f"{self._repo_url}/contents/{self.file_path}",
            what=f"commit {self.file_path}",
            expected=(200, 201),
            payload=payload
        )
        logger.info("Committed changes")

    def create_pull_request(self, branch: str, title: str, body: str) -> Dict[str, Any]:
        data = github_request(
            self.session, "POST", f"{self._repo_url}/pulls",
            what="create pull request",
            expected=(201,),
            payload={"title": title, "head": branch, "base": self.base_branch, "body": body}
        )
        logger.info(f"Created PR #{data.get('number')}")
        return data

    def add_labels(self, number: int, labels: List[str]) -> None:
        github_request(
            self.session, "POST", f"{self._repo_url}/issues/{number}/labels",
            what=f"label pull request #{number}",
            payload={"labels": labels}
        )

    def publish(self, award: AwardRecord, collection_json: str) -> Dict[str, Any]:
        """
        Open a review pull request adding one award.

        Args:
            award: The new award.
            collection_json: Full awards.json content including the award.

        Returns:
            Pull request data from the GitHub API.

        Raises:
            GitHubAPIError: If any step fails.
        """
        branch = branch_name_for(award)

        base_sha = self.get_ref_sha(self.base_branch)
        self.create_branch(branch, base_sha)

        file_sha = self.get_file_sha(branch)
        self.update_file(branch, collection_json, format_commit_message(award), file_sha)

        pr = self.create_pull_request(branch, format_pr_title(award), format_pr_body(award))
        self.add_labels(pr["number"], PR_LABELS)

        logger.info(f"Pull request ready: {pr.get('html_url', '')}")
        return pr

    def close(self) -> None:
        self.session.close()


def check_github_connection() -> bool:
    """
    Verify GitHub API connection and credentials.

    Returns:
        True if connection is successful, False otherwise.
    """
    try:
        token, _ = get_github_credentials()
    except ValueError as e:
        logger.warning(f"GitHub connection check failed: {e}")
        return False

    session = create_github_session(token)
    try:
        response = session.get(f"{GITHUB_API_BASE}/user", timeout=10)
    except requests.exceptions.RequestException as e:
        logger.warning(f"GitHub connection check failed: {e}")
        return False
    finally:
        session.close()

    if response.status_code == 200:
        try:
            login = response.json().get("login")
        except ValueError:
            login = None
        logger.debug(f"GitHub connection OK, authenticated as {login}")
        return True

    logger.warning(f"GitHub authentication failed: HTTP {response.status_code}")
    return False
