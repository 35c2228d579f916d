"""Custom exceptions for templating context with course and template references."""

from pathlib import Path
from typing import Optional

from noter.utils.errors import NoterError


class UnknownCourseError(NoterError):
    """
    Exception raised in strict mode when a course id has no configured name.

    Attributes:
        course_id: The unmapped course id
    """

    def __init__(self, course_id: str):
        self.course_id = course_id
        super().__init__(
            f"Unknown course '{course_id}'. Add it with: manage_config.py add-course {course_id} \"<name>\"",
            field=f"courses.{course_id}",
        )


class VersionNotFoundError(NoterError):
    """
    Exception raised when no template package version can be determined.

    Attributes:
        alias: Repository alias whose version was looked up
        package_root: Directory that was searched, if any
    """

    def __init__(self, alias: str, package_root: Optional[Path] = None, reason: Optional[str] = None):
        self.alias = alias
        self.package_root = package_root

        message = f"No template version found for repository '{alias}'"
        if reason:
            message += f" ({reason})"
        message += ". Install templates with: manage_templates.py install"

        super().__init__(message, path=package_root, field=f"template_repositories.{alias}.version")


class ManifestCorruptError(NoterError):
    """
    Exception raised when a package manifest exists but cannot be read.

    There is no fallback to lower-priority version sources: a corrupt
    manifest means the install itself is broken.

    Attributes:
        manifest_path: Path to the typst.toml that failed
        original_error: The original parser error, if any
    """

    def __init__(self, message: str, manifest_path: Path, original_error: Optional[Exception] = None):
        self.manifest_path = manifest_path
        self.original_error = original_error

        if original_error:
            message = f"{message}\nOriginal error: {original_error}"

        super().__init__(message, path=manifest_path)


class UnknownTemplateTypeError(NoterError):
    """
    Exception raised when no skeleton exists for a document type.

    Attributes:
        type_name: Requested document type
        available: Document types that do have skeletons
    """

    def __init__(self, type_name: str, available: Optional[list] = None):
        self.type_name = type_name
        self.available = available or []

        message = f"No skeleton found for document type '{type_name}'"
        if self.available:
            message += f"\nAvailable types: {', '.join(self.available)}"

        super().__init__(message)


class MissingRequiredTokenError(NoterError):
    """
    Exception raised when a skeleton uses a required token the context leaves empty.

    Attributes:
        token: Name of the missing token
        type_name: Document type being generated
        template_path: Skeleton that declares the token
    """

    def __init__(self, token: str, type_name: str, template_path: Optional[Path] = None):
        self.token = token
        self.type_name = type_name
        self.template_path = template_path
        super().__init__(
            f"Required token '{token}' is empty for document type '{type_name}'",
            path=template_path,
            field=token,
        )


class UnusedCustomFieldError(NoterError):
    """
    Exception raised under strict field validation for custom fields no skeleton token uses.

    Attributes:
        fields: The unused custom field names
        type_name: Document type being generated
    """

    def __init__(self, fields: list, type_name: str):
        self.fields = list(fields)
        self.type_name = type_name
        super().__init__(
            f"Custom field(s) {', '.join(self.fields)} not used by document type '{type_name}'",
            field=self.fields[0] if self.fields else None,
        )


class FetchError(NoterError):
    """
    Exception raised when downloading or installing a template package fails.

    Attributes:
        repository: GitHub "owner/repo" being fetched
        original_error: The underlying HTTP or archive error, if any
    """

    def __init__(self, message: str, repository: str, original_error: Optional[Exception] = None):
        self.repository = repository
        self.original_error = original_error

        message = f"{message} (repository: {repository})"
        if original_error:
            message += f"\nOriginal error: {original_error}"

        super().__init__(message)


class TemplateRenderError(NoterError):
    """
    Exception raised when a skeleton cannot be parsed or rendered.

    Attributes:
        type_name: Document type being rendered
        template_path: Path to the skeleton file
        original_error: The original Jinja2 error
    """

    def __init__(
        self,
        message: str,
        type_name: Optional[str] = None,
        template_path: Optional[Path] = None,
        original_error: Optional[Exception] = None,
    ):
        self.type_name = type_name
        self.template_path = template_path
        self.original_error = original_error

        parts = [message]

        if type_name:
            parts.append(f"Type: {type_name}")

        if original_error:
            parts.append(f"Original error: {str(original_error)}")

        super().__init__("\n".join(parts), path=template_path)
