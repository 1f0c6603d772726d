"""渲染后质量门禁"""

from pdmt.quality.gate import DebtMarkerGate, EnforcementConfig, QualityDecision, QualityGate

__all__ = ["DebtMarkerGate", "EnforcementConfig", "QualityDecision", "QualityGate"]
