"""
Candidate source implementations.

Available implementations:
- DirectoryCandidateSource: images under <root>/<prompt_id>/, labelled with
  the model name parsed from each file name
- StaticCandidateSource: fixed candidate lists per prompt
"""

from .directory_source import DirectoryCandidateSource, parse_model_name
from .static_source import StaticCandidateSource

__all__ = ["DirectoryCandidateSource", "StaticCandidateSource", "parse_model_name"]
