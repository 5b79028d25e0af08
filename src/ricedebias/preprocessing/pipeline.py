"""
Rician Debias Pipeline Orchestrator

Runs one correction from a DebiasConfig:
1. Load the input series and the optional mask
2. Validate the mask, resolve and validate the noise specification
3. Allocate the output and run the parallel correction
4. Save the corrected series and the optional QC report

Every validation happens before the output is allocated, so a failed run
never leaves an output file behind.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, Union

from .noise import resolve_noise, validate_noise
from .rician_correction import RicianBiasCorrector, RicianCorrectionMetrics
from ..config import DebiasConfig
from ..data.output import OutputVolume
from ..data.volume import check_compatible, load_input_volume, load_optional_volume
from ..utils.logger import get_logger
from ..utils.memory_manager import get_memory_manager

logger = get_logger(__name__)


class PipelineError(Exception):
    """Exception raised for failures after validation"""
    pass


class RicianDebiasPipeline:
    """
    Complete Rician bias correction run

    Validation errors (VolumeLoadError, GeometryMismatchError) propagate
    unchanged; failures while correcting or saving are wrapped in
    PipelineError.
    """

    def __init__(self, config: DebiasConfig):
        self.config = config
        self.corrector = RicianBiasCorrector(
            n_threads=config.n_threads,
            chunk_size=config.chunk_size,
            show_progress=config.show_progress,
        )
        self.memory_manager = get_memory_manager()

        logger.info(
            f"RicianDebiasPipeline initialized: "
            f"input={config.input_path}, mask={config.mask}, rician={config.rician}"
        )
        logger.debug(f"maxdiff={config.maxdiff:g} mm^2/s (not used by the correction)")

    def run(self) -> Dict[str, Union[Path, RicianCorrectionMetrics]]:
        """
        Run the correction

        Returns
        -------
        outputs : dict
            - 'output': path of the corrected series
            - 'metrics': RicianCorrectionMetrics
            - 'qc_report': path of the QC report (only with qc_path)
        """
        start_time = datetime.now()
        config = self.config

        logger.info("[Step 1/4] Loading data...")
        volume = load_input_volume(config.input_path)
        mask = load_optional_volume(config.mask)

        logger.info("[Step 2/4] Validating geometry and noise specification...")
        if not mask.is_empty:
            check_compatible(volume, mask)
        noise = resolve_noise(config.rician)
        validate_noise(noise, volume)

        logger.info("[Step 3/4] Correcting Rician bias...")
        if not self.memory_manager.can_fit_in_memory(volume.shape, OutputVolume.dtype):
            logger.warning(f"Output of shape {volume.shape} exceeds the memory budget")

        try:
            output = OutputVolume.allocate_like(volume, name=str(config.output_path))
            output, metrics = self.corrector.correct(volume, mask, noise, output)

            logger.info("[Step 4/4] Saving outputs...")
            outputs = {
                'output': output.save(config.output_path),
                'metrics': metrics,
            }
            if config.qc_path is not None:
                metrics.save(config.qc_path)
                outputs['qc_report'] = config.qc_path

        except Exception as e:
            logger.error(f"Pipeline failed: {e}", exc_info=True)
            raise PipelineError(f"Rician bias correction failed: {e}")

        for key, value in metrics.metrics.items():
            logger.info(f"  {key}: {value}")
        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(f"Rician bias correction completed in {elapsed:.1f}s")

        return outputs
