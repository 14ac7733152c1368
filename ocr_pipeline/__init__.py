"""
Bitmap Subtitle OCR — Pipeline Package

Turns decoded subtitle bitmaps into an SRT text track:
  - frames: frame model, frame sources and the duplicate/size gate
  - image_source: frames from a YAML manifest of subtitle images
  - preprocess: inversion for Tesseract and optional PGM dumps
  - engine: Tesseract engine handles via tesserocr
  - pool: bounded pool of OCR engines and the result aggregator
  - reconciler: sequence ordering and end timestamp repair
  - srt_writer: Standard SRT file output
"""
