import numpy as np
import pgmfactor as pf

# Two pairwise potentials that share variable 5
phi = pf.create([2, 5], [2, 2], [10, 1, 1, 10])
psi = pf.Factor.from_potential([4, 5], np.array([[10.0, 1.0], [1.0, 10.0]]))

# Send a message from phi to variable 5 by summing out variable 2
message = phi.marginalize(2)
print("Message to variable 5:")
message.print_table()
print()

# Combine with psi and normalize to get the joint over (5, 4)
belief = (message * psi).normalize()
print("Belief:")
belief.print_table()
print()

# Most likely joint assignment
print("argmax (scope %r) = %r" % (belief.scope, belief.argmax()))
