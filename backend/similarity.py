from names import normalize


def distance(a: str, b: str) -> int:
    """Levenshtein edit distance (insertions, deletions, substitutions)."""
    if not a:
        return len(b)
    if not b:
        return len(a)

    # matrix[i][j] = distance between b[:i] and a[:j]
    matrix = [[0] * (len(a) + 1) for _ in range(len(b) + 1)]
    for i in range(len(b) + 1):
        matrix[i][0] = i
    for j in range(len(a) + 1):
        matrix[0][j] = j

    for i in range(1, len(b) + 1):
        for j in range(1, len(a) + 1):
            if b[i - 1] == a[j - 1]:
                matrix[i][j] = matrix[i - 1][j - 1]
            else:
                matrix[i][j] = 1 + min(
                    matrix[i - 1][j - 1],  # substitution
                    matrix[i][j - 1],      # insertion
                    matrix[i - 1][j],      # deletion
                )

    return matrix[len(b)][len(a)]


def similarity(a: str, b: str) -> float:
    """
    Similarity ratio between two task names, 0.0 to 1.0.
    Both names are normalized first, so case, punctuation and a leading
    classification label do not count. Two empty names are identical.
    """
    key_a = normalize(a)
    key_b = normalize(b)
    longest = max(len(key_a), len(key_b))
    if longest == 0:
        return 1.0
    return 1 - distance(key_a, key_b) / longest
