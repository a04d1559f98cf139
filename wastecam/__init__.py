"""
Live Waste Classifier

Streams camera frames, classifies each frame into one of four waste
categories with a pre-trained model and shows the top label.
"""

__version__ = "1.0.0"
__author__ = "Smart Trash Project"
