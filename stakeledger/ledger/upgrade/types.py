# MIT License
# Copyright (c) 2025 Hashborn

"""
Upgrade Protocol Types
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class UpgradePlan(BaseModel):
    """
    Logic swap request.

    Names the logic to activate and, optionally, the schema setup to run in
    the same atomic step (e.g. populating the staking partition).
    """
    name: str = Field(..., description="Upgrade name (e.g., 'EnableStaking')")
    logic: str = Field(..., description="Target logic name (e.g., 'v2')")
    setup_version: Optional[int] = Field(default=None, description="Schema setup to run after the swap")
    setup_params: Dict[str, Any] = Field(default_factory=dict, description="Arguments for the setup")
    description: str = Field(default="", description="Upgrade description")
