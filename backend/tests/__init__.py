# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Test Suite for flowgate

Structure:
- core/: config, logging and errors
- workflow_dsl/: structural validation, canonicalization, reference extraction
- governance/: registries, catalog loading and governance checks
- lifecycle/: version codes, the JSON store and the definition service
"""
