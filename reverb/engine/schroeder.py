"""Schroeder reverberator — serial allpass diffuser into a parallel comb bank.

The classical 1962 ordering, the reverse of Freeverb's:
    Input -> [allpasses in series] -> [combs in parallel, summed] -> Output
"""

from primitives.rng import UniformSource
from reverb.engine.chains import ParallelCombBank, SerialAllpassChain


class SchroederReverberator:

    def __init__(self, sample_rate: float, allpass_params, comb_params, **delay_kwargs):
        self.allpass = SerialAllpassChain(sample_rate, allpass_params, **delay_kwargs)
        self.comb = ParallelCombBank.from_params(sample_rate, comb_params, **delay_kwargs)

    def randomize(self, rng: UniformSource):
        """No-op; present so both topologies can be driven the same way."""

    def process(self, x: float) -> float:
        return self.comb.process(self.allpass.process(x))

    def reset(self):
        self.allpass.reset()
        self.comb.reset()
