"""
Matrix-based Exam Variant Generation
generation/

Steps:
1. Seeded Random      — LCG stream, Fisher–Yates shuffle, sample without truncation
2. Candidate Pool     — per-cell filter (taxonomy, cognitive level, type, difficulty band)
3. Cell Sampler       — exact quota draw from one pool
4. Variant Composer   — fill cells, shuffle questions, regroup sections, shuffle options
5. Variant Generator  — N seeded variants, variant codes, all-or-nothing batch

Support:
- Question Stats      — taxonomy/cognitive/type counts for the matrix editor
- Sections            — timed parts grouped by question type
- Exam Formatter      — test-taker rendering and audit replay from a mapping
"""
