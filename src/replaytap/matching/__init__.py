"""
ReplayTap Matching Module

Request matching engine for finding the recorded entry that answers an
incoming request.
"""

from .matcher import (
    Matcher,
    MethodMatcher,
    URLMatcher,
    HostMatcher,
    PathMatcher,
    QueryMatcher,
    HeadersMatcher,
    BodyMatcher,
    CustomMatcher,
    MatcherSet,
    MATCHERS_BY_NAME,
)

__all__ = [
    'Matcher',
    'MethodMatcher',
    'URLMatcher',
    'HostMatcher',
    'PathMatcher',
    'QueryMatcher',
    'HeadersMatcher',
    'BodyMatcher',
    'CustomMatcher',
    'MatcherSet',
    'MATCHERS_BY_NAME',
]
