from piiscan.classification.name_classifier import classify_by_name
from piiscan.classification.content_classifier import classify_by_content, to_text
