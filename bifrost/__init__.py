"""
Bifrost - access graph analysis across AWS IAM, AWS Identity Center and Okta.

Answers "which identities can ultimately reach which AWS service, and with
what privilege?" by normalising policy documents into stanzas and walking the
resulting identity -> group -> role -> policy -> service graph.
"""

__version__ = '0.3.0'
