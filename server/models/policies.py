"""Slate policy and bandit models."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator


class PolicyOutcomeRequest(BaseModel):
    """Either a direct reward, or engagement rates aggregated into one."""

    policy_name: str
    reward: Optional[float] = None
    ctr: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    save_rate: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    hide_rate: float = Field(default=0.0, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def check_reward_source(self):
        if self.reward is None and (self.ctr is None or self.save_rate is None):
            raise ValueError("Provide reward, or both ctr and save_rate")
        return self


class UpsertPolicyRequest(BaseModel):
    params: Dict[str, Any] = {}
    is_active: bool = False
