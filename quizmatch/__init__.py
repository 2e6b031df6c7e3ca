"""
Question Matching Engine
========================
Matches noisy OCR output of a photographed exam question against a fixed
multiple-choice question corpus.

Architecture:
    - Normalizer: Fixes known OCR misreads and collapses whitespace
    - Noise Classifier: Flags page furniture, watermarks and ad fragments
    - Stem Extractor: State machine that isolates the question stem
    - Keyword Extractor: CJK n-gram signature of a text
    - Scorer: Edit distance blended with keyword overlap
    - Ranker: Threshold, stable sort and confidence cutoff

Version: 1.0.0
"""

__version__ = "1.0.0"
