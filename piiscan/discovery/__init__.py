from piiscan.discovery.sampling import Sample, SamplingCoordinator
from piiscan.discovery.scanner import PiiScanner
