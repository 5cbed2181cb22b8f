"""Pricers consistent with curve calibration."""

from .cashflow_pricer import CashflowPricer

__all__ = ["CashflowPricer"]
