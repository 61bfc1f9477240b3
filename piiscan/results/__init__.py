from piiscan.results.aggregator import ResultAggregator
