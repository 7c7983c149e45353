"""
Static analysis package.

Pattern-based analyzers that share the Analyzer capability:
- Security risk assessment
- Complexity assessment
- Style & architecture assessment
"""

from pr_analyzer.static_analysis.base import Analyzer, AnalysisError
from pr_analyzer.static_analysis.security import SecurityAnalyzer
from pr_analyzer.static_analysis.complexity import ComplexityAnalyzer
from pr_analyzer.static_analysis.style import StyleAnalyzer

__all__ = [
    "Analyzer",
    "AnalysisError",
    "SecurityAnalyzer",
    "ComplexityAnalyzer",
    "StyleAnalyzer",
]
