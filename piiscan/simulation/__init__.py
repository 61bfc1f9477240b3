from piiscan.simulation.preview import ScanPreview
