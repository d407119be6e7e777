"""
Factory Configuration Model.
"""

from pydantic import Field, field_validator

from .base import BaseConfig


class FactoryConfig(BaseConfig):
    """
    Fund factory configuration.

    The creation fee is expressed in smallest units of the fee token.
    """

    owner: str = Field(
        default="deployer",
        description="Account allowed to change fee and treasury",
    )
    address: str = Field(
        default="fund_factory",
        description="Spender identity the factory uses on the fee token",
    )
    treasury: str = Field(
        default="treasury",
        description="Account receiving creation fees",
    )
    creation_fee: int = Field(
        default=100 * 10**18,
        ge=0,
        description="Fee charged per created fund",
    )
    base_symbol: str = Field(
        default="AVAX",
        description="Symbol of the native base currency",
    )

    @field_validator("owner", "address", "treasury")
    @classmethod
    def validate_account(cls, v: str) -> str:
        """Reject empty account identifiers."""
        if not v:
            raise ValueError("Account identifier must not be empty")
        return v
