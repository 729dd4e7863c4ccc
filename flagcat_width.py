#!/usr/bin/env python3
"""
🏳️‍🌈 flagcat - Width Calculation Module
======================================
Copyright (c) 2025 PNGN-Tec LLC

Display Width and Cluster Segmentation
======================================
Decides how many terminal columns each colored unit occupies, and
where one unit ends and the next begins.

Core Features
=============
- Cluster splitting: base character plus combining marks, variation
  selectors, ZWJ-joined characters and regional indicator pairs
- Unicode-aware width (CJK and emoji take two columns) via wcwidth
- LRU cache of cluster widths with hit/miss statistics

Module Interface
================
- WidthCalculator: cached width lookups
- split_clusters(): text -> list of clusters
- get_width(): width of one cluster using the default calculator

Example Usage
=============
```python
from flagcat_width import get_width, split_clusters

split_clusters("e\u0301x")   # ['e\u0301', 'x']
get_width("你")              # 2
```
"""

import threading
import logging
from typing import Optional, List, Dict, Union
from collections import OrderedDict

from wcwidth import wcwidth, wcswidth

# Configure logging
logger = logging.getLogger('flagcat.width')

ZWJ = '\u200d'
REGIONAL_INDICATOR_RANGE = (0x1F1E6, 0x1F1FF)


def _is_regional_indicator(char: str) -> bool:
    return REGIONAL_INDICATOR_RANGE[0] <= ord(char) <= REGIONAL_INDICATOR_RANGE[1]


def _joins_previous(cluster: List[str], char: str) -> bool:
    """Whether ``char`` continues the cluster built so far"""
    if not cluster:
        return False
    if cluster[-1] == ZWJ:
        return True
    if _is_regional_indicator(char):
        return len(cluster) == 1 and _is_regional_indicator(cluster[0])
    return wcwidth(char) == 0


def split_clusters(text: str) -> List[str]:
    """
    Split printable text into clusters that are colored as one unit.

    Args:
        text: Text without control characters

    Returns:
        Clusters in order; joining them gives back ``text``
    """
    clusters: List[List[str]] = []
    for char in text:
        if clusters and _joins_previous(clusters[-1], char):
            clusters[-1].append(char)
        else:
            clusters.append([char])
    return [''.join(cluster) for cluster in clusters]


class WidthCalculator:
    """
    Text width calculator with caching.

    Provides the column advance for each cluster the text renderer
    colors. Every printable cluster is at least one column wide and
    at most two.

    Attributes:
        stats: Dictionary containing calculation statistics
    """

    def __init__(self, cache_size: int = 1000, enable_cache: bool = True):
        """
        Initialize width calculator.

        Args:
            cache_size: Maximum number of cached clusters
            enable_cache: Whether to cache results
        """
        self._cache = OrderedDict()
        self._cache_size = cache_size
        self._cache_enabled = enable_cache
        self._lock = threading.Lock()

        # Statistics
        self.stats = {
            'cache_hits': 0,
            'cache_misses': 0,
            'calculations': 0,
            'cache_evictions': 0,
        }

        logger.debug(f"WidthCalculator initialized with cache_size={cache_size}, "
                     f"cache_enabled={enable_cache}")

    def get_width(self, cluster: str) -> int:
        """
        Get the number of columns a cluster advances the cursor.

        Args:
            cluster: One cluster as produced by split_clusters()

        Returns:
            1 or 2 (0 for the empty string)
        """
        if not cluster:
            return 0

        cached = self._get_cached(cluster)
        if cached is not None:
            return cached

        width = self._calculate_width(cluster)
        self.stats['calculations'] += 1
        self._cache_result(cluster, width)
        return width

    def get_widths(self, clusters: List[str]) -> List[int]:
        """Get widths for multiple clusters"""
        return [self.get_width(cluster) for cluster in clusters]

    def _get_cached(self, cluster: str) -> Optional[int]:
        """Get cached width if available."""
        if not self._cache_enabled:
            return None

        with self._lock:
            if cluster in self._cache:
                self._cache.move_to_end(cluster)
                self.stats['cache_hits'] += 1
                return self._cache[cluster]

        self.stats['cache_misses'] += 1
        return None

    def _calculate_width(self, cluster: str) -> int:
        """Width of a cluster clamped to one or two columns."""
        if len(cluster) == 2 and all(_is_regional_indicator(c) for c in cluster):
            return 2

        width = wcswidth(cluster)
        if width < 0:
            # Unassigned or unusual codepoints; trust the base character
            width = wcwidth(cluster[0])
        return min(max(width, 1), 2)

    def _cache_result(self, cluster: str, width: int):
        """Cache a width, evicting the least recently used entries."""
        if not self._cache_enabled:
            return

        with self._lock:
            while self._cache and len(self._cache) >= self._cache_size:
                self._cache.popitem(last=False)
                self.stats['cache_evictions'] += 1
            self._cache[cluster] = width

    def get_stats(self) -> Dict[str, Union[int, float]]:
        """
        Get calculator statistics.

        Returns:
            Dictionary with cache_hits, cache_misses, cache_hit_rate,
            calculations, cache_evictions and cache_entries
        """
        stats = self.stats.copy()

        total_requests = stats['cache_hits'] + stats['cache_misses']
        if total_requests > 0:
            stats['cache_hit_rate'] = stats['cache_hits'] / total_requests
        else:
            stats['cache_hit_rate'] = 0.0

        with self._lock:
            stats['cache_entries'] = len(self._cache)

        return stats


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_default_calculator = None
_calculator_lock = threading.Lock()

def get_calculator() -> WidthCalculator:
    """Get or create the default calculator"""
    global _default_calculator

    if _default_calculator is None:
        with _calculator_lock:
            if _default_calculator is None:
                _default_calculator = WidthCalculator()

    return _default_calculator


def get_width(cluster: str) -> int:
    """
    Column width of a cluster using the default calculator.

    Example:
        >>> get_width("A")
        1
        >>> get_width("你")
        2
    """
    return get_calculator().get_width(cluster)
