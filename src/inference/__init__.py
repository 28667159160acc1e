"""
Inference backends producing raw (normalized) face detections.
"""
