"""Bulk analysis across an organization's repositories."""

from repolens.orchestration.organization import OrganizationAnalyzer

__all__ = ["OrganizationAnalyzer"]
