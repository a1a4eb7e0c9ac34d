"""Ground-truth label auditing for object detection datasets."""

__version__ = "0.1.0"
