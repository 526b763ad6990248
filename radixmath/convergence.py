#
# Convergence test shared by the iterative transcendental functions
#

import attr


__all__ = ('Convergence', )


# Stop after this many sign changes of successive differences, on a falling guess
MAX_VACILLATIONS = 3


@attr.s(slots=True)
class Convergence:
    '''Decides when successive guesses of an iteration have converged.

    compare is a three-way comparison of two guesses.  Iteration stops when two successive
    guesses are equal, or when the guesses have vacillated above and below the limit more
    than MAX_VACILLATIONS times and the newer guess is the lower of the two.
    '''

    compare = attr.ib()
    last_compare = attr.ib(default=0)
    vacillations = attr.ib(default=0)
    iterations = attr.ib(default=0)

    def converged(self, last_guess, new_guess):
        '''Record a new guess; return True if iteration should stop.'''
        self.iterations += 1
        cmp = self.compare(last_guess, new_guess)
        if cmp == 0:
            return True
        if (cmp > 0 and self.last_compare < 0) or (self.last_compare > 0 and cmp < 0):
            self.vacillations += 1
            if self.vacillations > MAX_VACILLATIONS and cmp > 0:
                return True
        self.last_compare = cmp
        return False
