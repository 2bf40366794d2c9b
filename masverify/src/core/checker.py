from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from masverify.src.core.errors import FailureKind, MasVerifyError
from masverify.src.core.extractor import MISSING, SigningMetadata
from masverify.src.utils.config_loader import ExpectedIdentity

ARM_ARCHITECTURES = ("arm64",)
INTEL_ARCHITECTURES = ("x86_64", "i386")

UPDATER_TITLE = "Auto-updater components (must be absent)"
EMBEDDED_PROFILE_TITLE = "Embedded provisioning profile"
PROFILE_APP_ID_TITLE = "Profile application identifier"
PROFILE_TEAM_ID_TITLE = "Profile team identifier"
EXPIRATION_TITLE = "Profile expiration"
ENTITLEMENTS_TITLE = "Entitlements"
SIGNATURE_TITLE = "Code signature"
INSTALLER_TITLE = "Installer package signature"
UNIVERSAL_BINARY_TITLE = "Universal binary (arm64 + x86_64)"


@dataclass
class CheckResult:
    """Outcome of a single checklist rule"""

    title: str
    passed: bool
    message: str
    details: List[str] = field(default_factory=list)
    kind: Optional[FailureKind] = None
    skipped: bool = False


def rule_result(
    title: str,
    condition: bool,
    pass_message: str,
    fail_message: str,
    details: Optional[List[str]] = None,
    kind: FailureKind = FailureKind.MISMATCH,
) -> CheckResult:
    """Turn a (condition, pass-message, fail-message) triple into a result."""
    return CheckResult(
        title=title,
        passed=condition,
        message=pass_message if condition else fail_message,
        details=list(details or []),
        kind=None if condition else kind,
    )


def all_passed(results: List[CheckResult]) -> bool:
    return all(r.passed for r in results)


class RuleChecker:
    """Evaluates the Mac App Store checklist against one build's metadata.

    Rules run in a fixed order and never short-circuit, so one run reports
    every problem at once.
    """

    def __init__(self, expected: ExpectedIdentity, now: Optional[datetime] = None):
        self.expected = expected
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        self.now = now

    @property
    def checklist(self) -> List[Tuple[str, Callable[[SigningMetadata], CheckResult]]]:
        return [
            (UPDATER_TITLE, self.check_updater_absent),
            (EMBEDDED_PROFILE_TITLE, self.check_embedded_profile),
            (PROFILE_APP_ID_TITLE, self.check_profile_application_identifier),
            (PROFILE_TEAM_ID_TITLE, self.check_profile_team_identifier),
            (EXPIRATION_TITLE, self.check_profile_expiration),
            (ENTITLEMENTS_TITLE, self.check_entitlements),
            (SIGNATURE_TITLE, self.check_signing_authority),
            (INSTALLER_TITLE, self.check_installer_authority),
            (UNIVERSAL_BINARY_TITLE, self.check_universal_binary),
        ]

    def evaluate(self, metadata: SigningMetadata) -> List[CheckResult]:
        results = []
        for title, rule in self.checklist:
            try:
                results.append(rule(metadata))
            except MasVerifyError as e:
                results.append(
                    CheckResult(
                        title=title,
                        passed=False,
                        message=e.message,
                        details=e.hints,
                        kind=e.kind,
                    )
                )
        return results

    def _read_error(self, metadata: SigningMetadata, name: str) -> List[str]:
        error = metadata.errors.get(name)
        return [f"Error: {error}"] if error else []

    def check_updater_absent(self, metadata: SigningMetadata) -> CheckResult:
        found = metadata.updater_components
        return rule_result(
            UPDATER_TITLE,
            not found,
            "No ShipIt or Squirrel.framework found",
            "ShipIt or Squirrel.framework found",
            details=[f"Found: {path}" for path in found],
        )

    def check_embedded_profile(self, metadata: SigningMetadata) -> CheckResult:
        exists = metadata.profile_path is not None
        details = []
        if not exists:
            details = [
                "MAS builds require an embedded provisioning profile",
                f"Expected at: {metadata.embedded_profile_path}",
            ]
        return rule_result(
            EMBEDDED_PROFILE_TITLE,
            exists,
            "embedded.provisionprofile exists",
            "embedded.provisionprofile not found",
            details=details,
            kind=FailureKind.NOT_FOUND,
        )

    def _profile_unavailable(self, metadata: SigningMetadata, title: str):
        if metadata.profile_path is None:
            return CheckResult(
                title=title,
                passed=False,
                message="No embedded.provisionprofile to inspect",
                kind=FailureKind.NOT_FOUND,
            )
        if metadata.profile is MISSING:
            return CheckResult(
                title=title,
                passed=False,
                message="Could not read or parse embedded.provisionprofile",
                details=self._read_error(metadata, "profile"),
                kind=FailureKind.EXTERNAL_TOOL_FAILURE,
            )
        return None

    def check_profile_application_identifier(
        self, metadata: SigningMetadata
    ) -> CheckResult:
        title = PROFILE_APP_ID_TITLE
        unavailable = self._profile_unavailable(metadata, title)
        if unavailable:
            return unavailable

        expected = self.expected.application_identifier
        found = metadata.profile.application_identifier
        return rule_result(
            title,
            found == expected,
            f"Profile ApplicationIdentifier: {found}",
            "Profile ApplicationIdentifier mismatch",
            details=[f"Expected: {expected}", f"Found: {found}"],
            kind=FailureKind.PARSE_FAILURE if found is MISSING else FailureKind.MISMATCH,
        )

    def check_profile_team_identifier(self, metadata: SigningMetadata) -> CheckResult:
        title = PROFILE_TEAM_ID_TITLE
        unavailable = self._profile_unavailable(metadata, title)
        if unavailable:
            return unavailable

        expected = self.expected.team_id
        found = metadata.profile.team_identifier
        return rule_result(
            title,
            found == expected,
            f"Profile TeamIdentifier: {found}",
            "Profile TeamIdentifier mismatch",
            details=[f"Expected: {expected}", f"Found: {found}"],
            kind=FailureKind.PARSE_FAILURE if found is MISSING else FailureKind.MISMATCH,
        )

    def check_profile_expiration(self, metadata: SigningMetadata) -> CheckResult:
        title = EXPIRATION_TITLE
        unavailable = self._profile_unavailable(metadata, title)
        if unavailable:
            return unavailable

        raw = metadata.profile.expiration_date
        if raw is MISSING:
            return rule_result(
                title,
                False,
                "",
                "Profile ExpirationDate missing",
                kind=FailureKind.PARSE_FAILURE,
            )

        # Raises MetadataParseError on an unrecognised date
        expires_at = metadata.profile.expires_at
        return rule_result(
            title,
            expires_at > self.now,
            f"Profile valid until {raw}",
            "Provisioning profile has EXPIRED",
            details=[f"ExpirationDate: {raw}"],
        )

    def check_entitlements(self, metadata: SigningMetadata) -> CheckResult:
        title = ENTITLEMENTS_TITLE
        entitlements = metadata.entitlements
        if entitlements is MISSING:
            return CheckResult(
                title=title,
                passed=False,
                message="Could not read entitlements",
                details=self._read_error(metadata, "entitlements"),
                kind=FailureKind.EXTERNAL_TOOL_FAILURE,
            )

        app_id = entitlements.application_identifier
        team_id = entitlements.team_identifier
        details = [
            f"Entitlements application-identifier: {app_id}",
            f"Entitlements team-identifier: {team_id}",
            f"Entitlements app-sandbox: "
            f"{'true' if entitlements.sandbox_enabled else 'MISSING'}",
        ]
        problems = []

        expected_app_id = self.expected.application_identifier
        if app_id is MISSING:
            problems.append("Missing application-identifier in entitlements")
        elif app_id != expected_app_id:
            problems.append(
                f"Wrong application-identifier: {app_id} (expected {expected_app_id})"
            )

        if team_id != self.expected.team_id:
            problems.append(
                f"Wrong or missing team-identifier: {team_id} "
                f"(expected {self.expected.team_id})"
            )

        if not entitlements.sandbox_enabled:
            problems.append("Missing app-sandbox entitlement")

        # Cross-check against whatever the embedded profile provided
        profile = metadata.profile
        if profile is not MISSING:
            if (
                profile.application_identifier
                and app_id != profile.application_identifier
            ):
                problems.append(
                    "Entitlements application-identifier does not match profile "
                    f"({profile.application_identifier})"
                )
            if profile.team_identifier and team_id != profile.team_identifier:
                problems.append(
                    "Entitlements team-identifier does not match profile "
                    f"({profile.team_identifier})"
                )

        kind = FailureKind.MISMATCH
        if app_id is MISSING or team_id is MISSING:
            kind = FailureKind.PARSE_FAILURE

        return rule_result(
            title,
            not problems,
            "Entitlements are correct and match embedded profile",
            "; ".join(problems),
            details=details,
            kind=kind,
        )

    def check_signing_authority(self, metadata: SigningMetadata) -> CheckResult:
        title = SIGNATURE_TITLE
        signature = metadata.signature
        authority = self.expected.application_authority
        if signature is MISSING:
            return CheckResult(
                title=title,
                passed=False,
                message="Code signature verification failed",
                details=self._read_error(metadata, "signature"),
                kind=FailureKind.EXTERNAL_TOOL_FAILURE,
            )

        details = [f"Identity: {signature.authorities[0]}"] if signature.authorities else []
        if not signature.has_authority(authority):
            details.append(f"Expected: {authority}")
        return rule_result(
            title,
            signature.has_authority(authority),
            "Signed with MAS certificate",
            "Not signed with MAS certificate",
            details=details,
        )

    def check_installer_authority(self, metadata: SigningMetadata) -> CheckResult:
        title = INSTALLER_TITLE
        if metadata.pkg_path is None:
            return CheckResult(
                title=title,
                passed=True,
                message="No .pkg found, skipped",
                skipped=True,
            )

        text = metadata.package_signature
        if text is MISSING:
            return CheckResult(
                title=title,
                passed=False,
                message=".pkg signature verification failed",
                details=self._read_error(metadata, "package_signature"),
                kind=FailureKind.EXTERNAL_TOOL_FAILURE,
            )

        authority = self.expected.installer_authority
        return rule_result(
            title,
            authority in text,
            ".pkg signed with MAS installer certificate",
            ".pkg not signed with MAS installer certificate",
            details=[f"Package: {metadata.pkg_path.name}", f"Expected: {authority}"],
        )

    def check_universal_binary(self, metadata: SigningMetadata) -> CheckResult:
        title = UNIVERSAL_BINARY_TITLE
        if metadata.binary_path is None:
            return CheckResult(
                title=title,
                passed=False,
                message="Main binary not found",
                kind=FailureKind.NOT_FOUND,
            )

        info = metadata.architectures
        if info is MISSING:
            return CheckResult(
                title=title,
                passed=False,
                message="Could not check binary architecture",
                details=self._read_error(metadata, "architectures"),
                kind=FailureKind.EXTERNAL_TOOL_FAILURE,
            )

        missing = []
        if not any(arch in info.architectures for arch in ARM_ARCHITECTURES):
            missing.append("arm64")
        if not any(arch in info.architectures for arch in INTEL_ARCHITECTURES):
            missing.append("x86_64")

        details = [info.raw_text] if info.raw_text else []
        if missing:
            details.append("This will cause TestFlight error 91167")
        return rule_result(
            title,
            not missing,
            "Universal binary (arm64 + x86_64)",
            f"Not a universal binary: missing {' and '.join(missing)}",
            details=details,
        )
