"""Validation of untrusted post-authentication redirect URLs."""

import logging
import re
from urllib.parse import SplitResult, parse_qsl, urljoin, urlsplit

from src.launchpad.config import settings
from src.launchpad.features.auth_routing.access import verify_organization_access
from src.launchpad.features.auth_routing.models import (
    RedirectValidationResult,
    SecurityIssue,
    UserContext,
)
from src.launchpad.services.directories.protocols import OrganizationDirectory

logger = logging.getLogger(__name__)

ALLOWED_REDIRECT_PATTERNS = [
    re.compile(r"^/dashboard"),
    re.compile(r"^/organizations/[a-zA-Z0-9-]+(?=/|$)"),
    re.compile(r"^/onboarding"),
    re.compile(r"^/profile"),
    re.compile(r"^/settings"),
    re.compile(r"^/projects"),
    re.compile(r"^/teams"),
]

BLOCKED_REDIRECT_PATTERNS = [
    re.compile(r"^/api/"),
    re.compile(r"^/admin/"),
    re.compile(r"^/_next/"),
    re.compile(r"^/sign-in"),
    re.compile(r"^/sign-up"),
    re.compile(r"^/verify-email"),
    re.compile(r"^/reset-password"),
    re.compile(r"^/webhooks/"),
]

ORGANIZATION_PATH_PATTERN = re.compile(r"^/organizations/([a-zA-Z0-9-]+)(?=/|$)")

SUSPICIOUS_PARAMETER_MARKERS = ("javascript:", "data:", "vbscript:", "file:")

DEFAULT_PORTS = {"http": 80, "https": 443}

# C0 controls and space, trimmed from both ends the way browsers do
_TRIM_CHARS = "".join(chr(code) for code in range(0x21))
_TAB_OR_NEWLINE = re.compile(r"[\t\n\r]")
_ENCODED_DOT = re.compile(r"%2e", re.IGNORECASE)


def parse_redirect_url(candidate: str, base_url: str) -> SplitResult:
    """
    Resolve a candidate URL against the application base URL.

    Mirrors how a browser would interpret the value before navigating:
    surrounding whitespace and controls are trimmed, tabs and newlines dropped,
    backslashes read as slashes and dot segments (plain or percent-encoded)
    resolved. The query string is left untouched.

    Args:
        candidate: Untrusted URL or path
        base_url: Application base URL

    Returns:
        The resolved URL split into components

    Raises:
        ValueError: If the value cannot be parsed as a URL
    """
    if not isinstance(candidate, str):
        raise ValueError(f"Expected a string URL, got {type(candidate).__name__}")

    cleaned = _TAB_OR_NEWLINE.sub("", candidate.strip(_TRIM_CHARS))
    cleaned = cleaned.replace("\\", "/")

    parts = urlsplit(urljoin(base_url, cleaned))
    if parts.scheme in DEFAULT_PORTS:
        if not parts.hostname:
            raise ValueError("URL has no host")
        # Accessing .port validates it and raises ValueError when out of range
        parts.port
        # urljoin leaves encoded dot segments alone, and all of them when the candidate has a host
        parts = parts._replace(path=remove_dot_segments(parts.path or "/"))
    return parts


def _dot_segment(segment: str) -> str:
    """Spell a percent-encoded dot segment plainly; any other segment is returned as is."""
    decoded = _ENCODED_DOT.sub(".", segment)
    return decoded if decoded in (".", "..") else segment


def remove_dot_segments(path: str) -> str:
    """Resolve ``.`` and ``..`` segments of an absolute path, including ``%2e`` spellings."""
    segments = [_dot_segment(s) for s in path.split("/")]
    resolved: list[str] = []
    for segment in segments[1:]:
        if segment == "..":
            if resolved:
                resolved.pop()
        elif segment != ".":
            resolved.append(segment)
    if segments[-1] in (".", ".."):
        resolved.append("")
    return "/" + "/".join(resolved)


def url_origin(parts: SplitResult) -> str:
    """Serialize the origin of a URL, or "null" for schemes without one."""
    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS or not parts.hostname:
        return "null"

    port = parts.port
    host = parts.hostname.lower()
    if ":" in host:
        host = f"[{host}]"
    if port is None or port == DEFAULT_PORTS[scheme]:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def normalize_origin(origin: str) -> str:
    """Normalize a configured origin so it compares equal to ``url_origin`` output."""
    try:
        return url_origin(urlsplit(origin.strip()))
    except ValueError:
        return "null"


def has_suspicious_parameters(query: str) -> bool:
    """Whether any decoded query key or value carries a dangerous URI scheme."""
    for key, value in parse_qsl(query, keep_blank_values=True):
        lowered_key = key.lower()
        lowered_value = value.lower()
        if any(m in lowered_key or m in lowered_value for m in SUSPICIOUS_PARAMETER_MARKERS):
            return True
    return False


class RedirectValidator:
    """
    Allow-list validator for post-auth redirect URLs.

    Every applicable check runs and all issues are reported together. Paths
    under ``/organizations/{id}`` are re-authorized against the caller's
    memberships instead of trusting the ID in the URL.

    Example:
        >>> validator = RedirectValidator(organizations)
        >>> result = await validator.validate("/settings/profile?tab=security", context)
        >>> result.sanitized_url
        '/settings/profile?tab=security'
    """

    def __init__(
        self,
        organizations: OrganizationDirectory,
        base_url: str | None = None,
        allowed_origins: list[str] | None = None,
    ) -> None:
        self.organizations = organizations
        self.base_url = base_url or settings.app_url
        origins = allowed_origins if allowed_origins is not None else settings.redirect_origins
        self.allowed_origins = {normalize_origin(o) for o in [self.base_url, *origins]}
        self.allowed_origins.discard("null")

    async def validate(self, candidate_url: str, user_context: UserContext) -> RedirectValidationResult:
        """
        Validate a redirect URL for the given user.

        Never raises: unexpected errors produce an invalid result tagged
        ``validation_error``.

        Args:
            candidate_url: Untrusted URL from the client
            user_context: The signed-in user the redirect is for

        Returns:
            RedirectValidationResult with the sanitized path when valid
        """
        try:
            return await self._validate(candidate_url, user_context)
        except Exception as e:
            logger.error(
                f"Unexpected error validating redirect URL: {e}",
                exc_info=True,
                extra={"error_type": "redirect_validation_error"},
            )
            return RedirectValidationResult(
                is_valid=False,
                reason="Validation error occurred",
                security_issues=[SecurityIssue.VALIDATION_ERROR],
            )

    async def _validate(self, candidate_url: str, user_context: UserContext) -> RedirectValidationResult:
        try:
            parts = parse_redirect_url(candidate_url, self.base_url)
        except ValueError:
            return RedirectValidationResult(
                is_valid=False,
                reason="Invalid URL format",
                security_issues=[SecurityIssue.MALFORMED_URL],
            )

        issues: list[SecurityIssue] = []
        path = parts.path

        if url_origin(parts) not in self.allowed_origins:
            issues.append(SecurityIssue.EXTERNAL_ORIGIN)

        if any(pattern.match(path) for pattern in BLOCKED_REDIRECT_PATTERNS):
            issues.append(SecurityIssue.BLOCKED_PATH)
        elif path != "/" and not any(pattern.match(path) for pattern in ALLOWED_REDIRECT_PATTERNS):
            issues.append(SecurityIssue.PATH_NOT_ALLOWED)

        if has_suspicious_parameters(parts.query):
            issues.append(SecurityIssue.SUSPICIOUS_PARAMETERS)

        org_match = ORGANIZATION_PATH_PATTERN.match(path)
        if org_match:
            access = await verify_organization_access(
                self.organizations, user_context.user.id, org_match.group(1)
            )
            if not access.has_access:
                issues.append(SecurityIssue.ORGANIZATION_ACCESS_DENIED)

        if issues:
            return RedirectValidationResult(
                is_valid=False,
                reason="Security validation failed",
                security_issues=issues,
            )

        sanitized = path + (f"?{parts.query}" if parts.query else "")
        return RedirectValidationResult(
            is_valid=True,
            sanitized_url=sanitized,
            reason="URL validation passed",
        )
