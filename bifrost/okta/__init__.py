"""Okta directory collection."""

from bifrost.okta.client import OktaApiError, OktaClient

__all__ = ['OktaApiError', 'OktaClient']
