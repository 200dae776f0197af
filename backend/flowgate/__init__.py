# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
flowgate - workflow DSL validation and publish governance.

Decides whether a workflow graph is well formed, whether every external
reference it makes is resolvable and authorized, and gates the promotion of a
draft version into the single published version of a workflow definition.
"""

__version__ = "1.0.0"
