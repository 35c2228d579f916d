"""
noter - Note-taking for university courses, written in Typst

Generates lecture notes and assignments from versioned Typst template
packages, keeping the user's config in step with the installed templates.

Architecture:
- Configuration Context: Versioned config record, schema migration, persistence
- Templating Context: Template version resolution, document context, skeleton rendering
- Rendering Context: PDF compilation and status
"""

__version__ = "0.1.0"
